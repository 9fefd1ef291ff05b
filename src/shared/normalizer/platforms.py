"""
Video platform recognition for embedded players (YouTube, Vimeo, Dailymotion).
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


class Platform(str, Enum):
    YOUTUBE = "youtube"
    VIMEO = "vimeo"
    DAILYMOTION = "dailymotion"


_HOSTS: dict[Platform, tuple[str, ...]] = {
    Platform.YOUTUBE: ("youtube.com", "youtube-nocookie.com", "youtu.be"),
    Platform.VIMEO: ("vimeo.com",),
    Platform.DAILYMOTION: ("dailymotion.com", "dai.ly"),
}

_ID_PATTERNS: dict[Platform, tuple[re.Pattern[str], ...]] = {
    Platform.YOUTUBE: (
        re.compile(r"(?:youtube(?:-nocookie)?\.com/watch\?(?:.*&)?v=|youtu\.be/)([a-zA-Z0-9_-]{11})"),
        re.compile(r"youtube(?:-nocookie)?\.com/embed/([a-zA-Z0-9_-]{11})"),
        re.compile(r"youtube(?:-nocookie)?\.com/v/([a-zA-Z0-9_-]{11})"),
    ),
    Platform.VIMEO: (
        re.compile(r"player\.vimeo\.com/video/(\d+)"),
        re.compile(r"vimeo\.com/video/(\d+)"),
        re.compile(r"vimeo\.com/(\d+)"),
    ),
    Platform.DAILYMOTION: (
        re.compile(r"dailymotion\.com/embed/video/([a-zA-Z0-9]+)"),
        re.compile(r"dailymotion\.com/video/([a-zA-Z0-9]+)"),
        re.compile(r"dai\.ly/([a-zA-Z0-9]+)"),
    ),
}

_THUMBNAIL_TEMPLATES: dict[Platform, str] = {
    Platform.YOUTUBE: "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg",
    # Vimeo needs an API call for real thumbnails; vumbnail proxies it.
    Platform.VIMEO: "https://vumbnail.com/{video_id}.jpg",
    Platform.DAILYMOTION: "https://www.dailymotion.com/thumbnail/video/{video_id}",
}


def _host_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def detect_platform(url: str) -> Optional[Platform]:
    """Return the embed platform serving `url`, if it is a known one."""
    host = _host_of(url)
    if not host:
        return None
    for platform, suffixes in _HOSTS.items():
        for suffix in suffixes:
            if host == suffix or host.endswith("." + suffix):
                return platform
    return None


def is_known_embed_host(url: str) -> bool:
    return detect_platform(url) is not None


def extract_platform_video_id(url: str) -> Optional[tuple[Platform, str]]:
    """
    Extract ``(platform, video_id)`` from a YouTube / Vimeo / Dailymotion URL.

    Returns None for any other URL.
    """
    platform = detect_platform(url)
    if platform is None:
        return None
    for pattern in _ID_PATTERNS[platform]:
        match = pattern.search(url)
        if match:
            return platform, match.group(1)
    return None


def platform_thumbnail_url(url: str) -> Optional[str]:
    """Build the platform's thumbnail URL for an embed URL, if derivable."""
    found = extract_platform_video_id(url)
    if found is None:
        return None
    platform, video_id = found
    return _THUMBNAIL_TEMPLATES[platform].format(video_id=video_id)
