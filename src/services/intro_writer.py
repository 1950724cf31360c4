# src/services/intro_writer.py

"""AI-generated product blurbs via a chat-completion passthrough."""

from typing import Any

from src.upstream.base_client import BaseClient, parse_json

_INTRO_SYSTEM = (
    "你是资深啤酒和威士忌的爱好者，输出自然中文，简洁生动，"
    "包含风味、场景与搭配建议。"
)
_INTRO_PROMPT = (
    "请用简洁、生动的中文，面向一般消费者，用150-200字介绍产品「{name}」，"
    "突出风味、适合场景与搭配建议。"
)
_PRO_SYSTEM = (
    "你是专业的酒类从业者，参考公开评价与评分（如 Untappd），"
    "以专业但易懂的中文输出，聚焦风味与评分信息。"
)
_PRO_PROMPT = (
    "请以专业酒类从业者视角，基于公开资料（如 Untappd）为「{name}」"
    "撰写不超过500字的正经介绍，重点涵盖：核心风味、酒体与苦度、"
    "典型评分区间，避免夸张营销。"
)


def unconfigured_text(name: str) -> str:
    return f"未配置AI服务，产品「{name}」"


def unavailable_text(name: str) -> str:
    return f"暂无法生成介绍，产品「{name}」"


class IntroWriter(BaseClient):
    """Forward product names to the Ark chat-completion API."""

    def __init__(self) -> None:
        super().__init__("ai")

    def _complete(self, name: str, system: str, prompt: str) -> str:
        """Send one system+user exchange and return the reply text."""
        if not self.settings.ARK_API_KEY:
            self.logger.info("[ai] no ARK_API_KEY, returning placeholder")
            return unconfigured_text(name)

        payload: dict[str, Any] = {
            "model": self.settings.ARK_MODEL,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        self.logger.debug("[ai] request for %s (model=%s)", name, payload["model"])
        resp = self._post_json(
            self.settings.ARK_API_BASE,
            payload,
            headers={"Authorization": f"Bearer {self.settings.ARK_API_KEY}"},
        )
        body = parse_json(resp.text)
        try:
            text = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = ""
        if isinstance(text, str) and text.strip():
            return text
        self.logger.warning(
            "[ai] empty completion for %s (http=%d)", name, resp.status_code
        )
        return unavailable_text(name)

    def intro(self, name: str) -> str:
        """Short consumer-facing blurb."""
        return self._complete(name, _INTRO_SYSTEM, _INTRO_PROMPT.format(name=name))

    def pro_intro(self, name: str, desc: str = "", url: str = "") -> str:
        """Longer professional write-up, optionally grounded on desc/url."""
        prompt = _PRO_PROMPT.format(name=name)
        if desc:
            prompt += f"\n商品描述：{desc}"
        if url:
            prompt += f"\n商品链接：{url}"
        return self._complete(name, _PRO_SYSTEM, prompt)
