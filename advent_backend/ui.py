"""
Class-name mapping for the loading spinner widget.
"""

from __future__ import annotations

SIZE_CLASSES = {
    "sm": "h-4 w-4",
    "md": "h-8 w-8",
    "lg": "h-12 w-12",
}

COLOR_CLASSES = {
    "blue": "border-blue-500",
    "green": "border-green-500",
    "purple": "border-purple-500",
    "gray": "border-gray-500",
}

BASE_CLASSES = "animate-spin rounded-full border-2 border-t-transparent"


def spinner_classes(size: str = "md", color: str = "blue") -> str:
    if size not in SIZE_CLASSES:
        raise ValueError(f"Unknown spinner size: {size}")
    if color not in COLOR_CLASSES:
        raise ValueError(f"Unknown spinner color: {color}")
    return f"{BASE_CLASSES} {SIZE_CLASSES[size]} {COLOR_CLASSES[color]}"
