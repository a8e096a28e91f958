"""
本地化服务（英语/阿拉伯语）
作用于序列化后的套餐字典（驼峰键；行程日使用下划线键）
"""

from typing import Any, Dict, Optional

SUPPORTED_LANGUAGES = ("en", "ar")
DEFAULT_LANGUAGE = "en"
_ARABIC_DIGITS = "٠١٢٣٤٥٦٧٨٩"


def _pick(en_value: Any, ar_value: Any, language: str) -> Any:
    if language == "ar" and ar_value:
        return ar_value
    return en_value


class LocalizationService:

    def validate_language(self, language: Optional[str]) -> str:
        return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE

    def get_language_direction(self, language: str) -> str:
        return "rtl" if language == "ar" else "ltr"

    def format_number(self, number, language: str = "en") -> str:
        text = str(number)
        if language == "ar":
            return "".join(_ARABIC_DIGITS[int(ch)] if ch.isdigit() else ch for ch in text)
        return text

    def format_duration(self, days: int, language: str = "en") -> str:
        if language == "ar":
            if days == 1:
                return "يوم واحد"
            if days == 2:
                return "يومان"
            if days <= 10:
                return f"{days} أيام"
            return f"{days} يوماً"
        if days == 1:
            return "1 day"
        return f"{days} days"

    def localize_package(self, package: Dict[str, Any], language: str = "en") -> Dict[str, Any]:
        if not package:
            return package

        localized = dict(package)
        localized["title"] = _pick(package.get("title"), package.get("titleAr"), language)
        localized["description"] = _pick(package.get("description"), package.get("descriptionAr"), language)
        localized["destination"] = _pick(package.get("destination"), package.get("destinationAr"), language)

        for field in ("inclusions", "exclusions", "highlights"):
            if field in package:
                localized[field] = _pick(package.get(field), package.get(f"{field}Ar"), language)

        if package.get("itinerary") is not None:
            localized["itinerary"] = [
                {
                    **day,
                    "title": _pick(day.get("title"), day.get("title_ar"), language),
                    "description": _pick(day.get("description"), day.get("description_ar"), language),
                    "activities": _pick(day.get("activities"), day.get("activities_ar"), language),
                }
                for day in package["itinerary"]
            ]

        if package.get("duration"):
            localized["formattedDuration"] = self.format_duration(package["duration"], language)

        return localized


localization_service = LocalizationService()
