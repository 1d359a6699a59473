"""
语言注册表：
- 内部语言标识 → 展示名称 + Judge0 语言 ID
- 模块加载时构建一次，之后只读
- 派发判题前必须先在这里解析语言，不支持的语言不会产生任何远程调用
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from apps.common.exceptions import UnsupportedLanguageError


@dataclass(frozen=True)
class Language:
    id: str
    name: str
    judge0_id: int


LANGUAGES: Mapping[str, Language] = MappingProxyType({
    lang.id: lang
    for lang in (
        Language(id="cpp", name="C++", judge0_id=54),
        Language(id="js", name="JavaScript", judge0_id=63),
        Language(id="py", name="Python", judge0_id=71),
        Language(id="rs", name="Rust", judge0_id=73),
    )
})


def get_language(language_id: str) -> Language:
    """按内部标识查找语言，未注册抛 UnsupportedLanguageError"""
    language = LANGUAGES.get((language_id or "").strip().lower())
    if language is None:
        raise UnsupportedLanguageError(extra={"language": language_id, "supported": sorted(LANGUAGES)})
    return language


def supported_languages() -> list[dict]:
    return [{"id": lang.id, "name": lang.name} for lang in LANGUAGES.values()]
