"""
数据库种子数据
"""

DEFAULT_ADMIN = {
    "name": "Trippat Admin",
    "role": "admin",
    "language": "en",
    "currency": "SAR",
    "is_email_verified": True,
    "is_active": True,
}

# 套餐分类枚举 -> 默认分类（名称、图标、颜色）
_CATEGORY_DEFAULTS = [
    ("adventure", "Adventure", "مغامرة", "Mountain", "#F97316"),
    ("luxury", "Luxury", "فاخر", "Crown", "#A855F7"),
    ("family", "Family", "عائلي", "Users", "#22C55E"),
    ("cultural", "Cultural", "ثقافي", "Landmark", "#EAB308"),
    ("nature", "Nature", "طبيعة", "Trees", "#16A34A"),
    ("business", "Business", "أعمال", "Briefcase", "#64748B"),
    ("wellness", "Wellness", "استجمام", "Heart", "#EC4899"),
    ("food", "Food", "طعام", "Utensils", "#EF4444"),
    ("photography", "Photography", "تصوير", "Camera", "#0EA5E9"),
    ("budget", "Budget", "اقتصادي", "Wallet", "#84CC16"),
    ("religious", "Religious", "ديني", "Moon", "#14B8A6"),
    ("educational", "Educational", "تعليمي", "GraduationCap", "#6366F1"),
    ("sports", "Sports", "رياضة", "Trophy", "#F59E0B"),
    ("cruise", "Cruise", "رحلة بحرية", "Ship", "#3B82F6"),
    ("safari", "Safari", "سفاري", "Compass", "#CA8A04"),
    ("regular", "Regular", "عادي", "Package", "#3B82F6"),
    ("group", "Group", "جماعي", "UsersRound", "#8B5CF6"),
]

DEFAULT_CATEGORIES = [
    {
        "name_en": name_en,
        "name_ar": name_ar,
        "description_en": f"{name_en} travel packages",
        "slug": key,
        "icon": icon,
        "color": color,
        "status": "active",
        "sort_order": index,
        "package_category": key,
    }
    for index, (key, name_en, name_ar, icon, color) in enumerate(_CATEGORY_DEFAULTS)
]
