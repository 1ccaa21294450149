"""
Localized validation messages.

Messages are looked up by error code at validation time, so a compiled
schema can be shared between compilers using different locales.
"""

from dataclasses import dataclass
from typing import Any

DEFAULT_LOCALE = "en-US"

EN_US_MESSAGES: dict[str, str] = {
    "required": "This field is required",
    "invalid_type": "Must be text",
    "invalid_email": "Must be a valid email address",
    "invalid_number": "Must be a number",
    "invalid_boolean": "Must be true or false",
    "invalid_option": "Must be one of the allowed options",
    "option_disabled": "This option is not available",
    "invalid_date": "Must be a valid date (YYYY-MM-DD)",
    "invalid_datetime": "Must be a valid date and time",
    "invalid_file": "Must be a file reference",
    "min_length": "Must be at least {min_length} characters",
    "max_length": "Must be at most {max_length} characters",
    "min": "Must be greater than or equal to {min}",
    "max": "Must be less than or equal to {max}",
    "pattern": "Invalid format",
    "custom": "Invalid value",
    "custom_validation_error": "Could not run validation rule '{rule}'",
    "async_validation": "Invalid value",
    "async_validation_error": "Could not verify this value, please try again",
}

ZH_CN_MESSAGES: dict[str, str] = {
    "required": "不能为空",
    "invalid_type": "必须是文本",
    "invalid_email": "邮箱格式无效",
    "invalid_number": "必须是数字",
    "invalid_boolean": "必须是布尔值",
    "invalid_option": "必须是允许的选项之一",
    "option_disabled": "该选项不可用",
    "invalid_date": "日期无效 (YYYY-MM-DD)",
    "invalid_datetime": "日期时间格式无效",
    "invalid_file": "必须是文件引用",
    "min_length": "至少需要{min_length}个字符",
    "max_length": "不能超过{max_length}个字符",
    "min": "不能小于{min}",
    "max": "不能大于{max}",
    "pattern": "格式不正确",
    "custom": "值无效",
    "custom_validation_error": "无法执行验证规则 '{rule}'",
    "async_validation": "值无效",
    "async_validation_error": "暂时无法验证该值，请稍后重试",
}

LOCALIZATIONS: dict[str, dict[str, str]] = {
    "en-US": EN_US_MESSAGES,
    "zh-CN": ZH_CN_MESSAGES,
}


@dataclass(frozen=True)
class MessageCatalog:
    """Message templates for one locale."""

    locale: str
    messages: dict[str, str]

    def format(self, code: str, **params: Any) -> str:
        """Render the message for ``code``; unknown codes fall back to English, then the code."""
        template = self.messages.get(code) or EN_US_MESSAGES.get(code) or code
        try:
            return template.format(**params)
        except (KeyError, IndexError):
            return template


def get_catalog(locale: str = DEFAULT_LOCALE) -> MessageCatalog:
    """
    Get the message catalog for a locale.

    Raises:
        ValueError: If the locale has no catalog.
    """
    if locale not in LOCALIZATIONS:
        supported = ", ".join(sorted(LOCALIZATIONS))
        raise ValueError(f"Unsupported locale '{locale}'. Supported: {supported}")
    return MessageCatalog(locale=locale, messages=LOCALIZATIONS[locale])


def supported_locales() -> list[str]:
    return sorted(LOCALIZATIONS)
