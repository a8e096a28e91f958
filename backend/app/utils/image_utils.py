"""
图片处理工具（Pillow）
"""

import io
import os
from typing import Dict, List, Tuple

from PIL import Image, UnidentifiedImageError

# 标准尺寸
IMAGE_SIZES: Dict[str, Tuple[int, int]] = {
    "thumbnail": (150, 150),
    "small": (480, 320),
    "medium": (800, 600),
    "large": (1200, 900),
}

JPEG_QUALITY = 85
OPTIMAL_FORMATS = ("jpeg", "png", "webp")


def open_image(data: bytes) -> Image.Image:
    """打开并校验图片字节"""
    try:
        image = Image.open(io.BytesIO(data))
        image.verify()
        # verify 之后需要重新打开
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"Invalid image file: {e}")


def to_rgb(image: Image.Image) -> Image.Image:
    """JPEG 不支持透明通道，透明区域铺白底"""
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


def save_resized_jpeg(image: Image.Image, size: Tuple[int, int], output_path: str) -> Dict:
    """等比缩放到不超过 size 并保存为 JPEG，返回尺寸信息"""
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    resized = to_rgb(image.copy())
    resized.thumbnail(size, Image.Resampling.LANCZOS)
    resized.save(output_path, format="JPEG", quality=JPEG_QUALITY, optimize=True, progressive=True)
    return {
        "width": resized.width,
        "height": resized.height,
        "size": os.path.getsize(output_path),
        "format": "jpeg",
    }


def image_metadata(image: Image.Image) -> Dict:
    fmt = (image.format or "").lower()
    return {
        "format": fmt,
        "width": image.width,
        "height": image.height,
        "mode": image.mode,
        "hasTransparency": image.mode in ("RGBA", "LA") or "transparency" in image.info,
        "isProgressive": bool(image.info.get("progressive") or image.info.get("progression")),
    }


def analyze_image_quality(image: Image.Image, file_size: int) -> Tuple[int, List[Dict]]:
    """从100分起按规则扣分，每一项扣分对应一条优化建议"""
    meta = image_metadata(image)
    score = 100
    suggestions: List[Dict] = []

    size_mb = file_size / (1024 * 1024)
    if size_mb > 5:
        score -= 20
        suggestions.append({
            "type": "size", "severity": "high",
            "message": "File size exceeds 5MB. Compress the image before uploading.",
        })
    elif size_mb > 2:
        score -= 10
        suggestions.append({
            "type": "size", "severity": "medium",
            "message": "File size exceeds 2MB. Consider compressing the image.",
        })

    if meta["width"] < 800 or meta["height"] < 600:
        score -= 15
        suggestions.append({
            "type": "dimension", "severity": "medium",
            "message": "Image resolution is low. Use at least 800x600 pixels.",
        })
    elif meta["width"] > 4000 or meta["height"] > 4000:
        score -= 10
        suggestions.append({
            "type": "dimension", "severity": "medium",
            "message": "Image dimensions are very large. Consider resizing to max 4000px for better performance.",
        })

    if meta["format"] not in OPTIMAL_FORMATS:
        score -= 10
        suggestions.append({
            "type": "format", "severity": "low",
            "message": "Use JPEG, PNG or WebP for better compatibility.",
        })

    if meta["mode"] != "RGB":
        score -= 5
        suggestions.append({
            "type": "color", "severity": "low",
            "message": "Convert the image to the RGB color space.",
        })

    if meta["format"] == "jpeg" and not meta["isProgressive"]:
        score -= 5
        suggestions.append({
            "type": "optimization", "severity": "low",
            "message": "Enable progressive JPEG for better loading experience.",
        })

    return max(0, score), suggestions
