from __future__ import annotations

DEFAULT_ICON = "file-o"
LINK_ICON = "link"
FOLDER_ICON = "folder-o"

SUFFIX_ICONS = {
    ".tar.gz": "file-archive-o",
    ".tar.bz2": "file-archive-o",
    ".tar.xz": "file-archive-o",
    ".tgz": "file-archive-o",
    ".zip": "file-archive-o",
    ".tar": "file-archive-o",
    ".gz": "file-archive-o",
    ".7z": "file-archive-o",
    ".pdf": "file-pdf-o",
    ".xls": "file-excel-o",
    ".xlsx": "file-excel-o",
    ".ods": "file-excel-o",
    ".doc": "file-word-o",
    ".docx": "file-word-o",
    ".odf": "file-word-o",
    ".odt": "file-word-o",
    ".ppt": "file-powerpoint-o",
    ".pptx": "file-powerpoint-o",
    ".jpg": "file-picture-o",
    ".jpeg": "file-picture-o",
    ".bmp": "file-picture-o",
    ".png": "file-picture-o",
    ".gif": "file-picture-o",
    ".svg": "file-picture-o",
    ".mp3": "file-audio-o",
    ".flac": "file-audio-o",
    ".wav": "file-audio-o",
    ".mp4": "file-video-o",
    ".mkv": "file-video-o",
    ".avi": "file-video-o",
    ".txt": "file-text-o",
    ".md": "file-text-o",
    ".csv": "file-text-o",
    ".js": "file-code-o",
    ".ts": "file-code-o",
    ".py": "file-code-o",
    ".go": "file-code-o",
    ".java": "file-code-o",
    ".c": "file-code-o",
    ".h": "file-code-o",
    ".html": "file-code-o",
    ".css": "file-code-o",
    ".json": "file-code-o",
    ".sh": "file-code-o",
}

# longest suffix first so ".tar.gz" wins over ".gz"
_SUFFIXES_BY_SPECIFICITY = sorted(SUFFIX_ICONS, key=lambda suffix: (-len(suffix), suffix))

ICON_GLYPHS = {
    FOLDER_ICON: "📁",
    LINK_ICON: "🔗",
    "file-archive-o": "📦",
    "file-pdf-o": "📕",
    "file-excel-o": "📊",
    "file-word-o": "📝",
    "file-powerpoint-o": "📽",
    "file-picture-o": "🖼",
    "file-audio-o": "🎵",
    "file-video-o": "🎞",
    "file-text-o": "📄",
    "file-code-o": "📜",
    DEFAULT_ICON: "📄",
}


def icon_for_name(file_name: str) -> str:
    lowered = file_name.lower()
    for suffix in _SUFFIXES_BY_SPECIFICITY:
        if lowered.endswith(suffix) and len(lowered) > len(suffix):
            return SUFFIX_ICONS[suffix]
    return DEFAULT_ICON


def glyph_for_icon(icon: str) -> str:
    return ICON_GLYPHS.get(icon, ICON_GLYPHS[DEFAULT_ICON])
