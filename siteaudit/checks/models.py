"""Check results and per-check metadata records.

Each check slug owns one frozen metadata dataclass so renderers and
tests know the exact shape. ``hint()`` produces the one-line explanation
shown next to the check score.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any


@dataclass(frozen=True)
class CheckMeta:
    """Base for check metadata. ``error`` is set when the check fell back."""

    error: str | None = None

    def hint(self) -> str:
        return ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data.get("error") is None:
            data.pop("error", None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckMeta:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class CachePresenceMeta(CheckMeta):
    cached: bool = False
    plugin: str = ""
    cdn: list[str] = field(default_factory=list)

    def hint(self) -> str:
        text = f"Cache detected: {'yes' if self.cached else 'no'}"
        if self.plugin:
            text += f" ({self.plugin})"
        if self.cdn:
            text += f", CDN: {', '.join(self.cdn)}"
        return text


@dataclass(frozen=True)
class CompressionMeta(CheckMeta):
    encoding: str = "n/a"

    def hint(self) -> str:
        return f"Encoding: {self.encoding}"


@dataclass(frozen=True)
class ClientCacheMeta(CheckMeta):
    cache_control: str = "n/a"
    asset_url: str | None = None

    def hint(self) -> str:
        return f"Cache-Control: {self.cache_control}"


@dataclass(frozen=True)
class AssetCountsMeta(CheckMeta):
    css: int = 0
    js: int = 0

    def hint(self) -> str:
        return f"CSS: {self.css}, JS: {self.js}"


@dataclass(frozen=True)
class RenderBlockingMeta(CheckMeta):
    blocking_css: int = 0
    blocking_js: int = 0

    def hint(self) -> str:
        return f"Blocking CSS: {self.blocking_css}, Blocking JS: {self.blocking_js}"


@dataclass(frozen=True)
class ImagesMeta(CheckMeta):
    total: int = 0
    missing_dims: int = 0
    nextgen: int = 0

    def hint(self) -> str:
        return f"Images: {self.total}, Missing dims: {self.missing_dims}, Next-gen: {self.nextgen}"


@dataclass(frozen=True)
class TTFBMeta(CheckMeta):
    ttfb_ms: int = 0

    def hint(self) -> str:
        return f"Measured TTFB: {self.ttfb_ms}ms"


@dataclass(frozen=True)
class ProtocolMeta(CheckMeta):
    alpn: str = "h2/h3-unknown"
    http_version: str | None = None

    def hint(self) -> str:
        return f"ALPN: {self.alpn}"


@dataclass(frozen=True)
class AutoloadMeta(CheckMeta):
    bytes: int = 0

    def hint(self) -> str:
        return f"Autoload size: {round(self.bytes / 1024)} KB"


@dataclass(frozen=True)
class PostmetaMeta(CheckMeta):
    avg_meta: float = 0.0

    def hint(self) -> str:
        return f"Avg meta per post (last 20): {self.avg_meta}"


@dataclass(frozen=True)
class TransientsMeta(CheckMeta):
    expired: int = 0

    def hint(self) -> str:
        return f"Expired transients: {self.expired}"


@dataclass(frozen=True)
class UpdatesMeta(CheckMeta):
    count: int = 0

    def hint(self) -> str:
        return f"Updates available: {self.count}"


@dataclass(frozen=True)
class CheckResult:
    """Score (0-100) plus typed metadata, produced by exactly one check."""

    score: int
    meta: CheckMeta

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "meta": self.meta.to_dict()}

    @classmethod
    def from_dict(cls, slug: str, data: dict[str, Any]) -> CheckResult:
        meta_type = META_TYPES.get(slug, CheckMeta)
        return cls(
            score=int(data.get("score", 0)),
            meta=meta_type.from_dict(data.get("meta") or {}),
        )


# Metadata record for each check slug
META_TYPES: dict[str, type[CheckMeta]] = {
    "cache_present": CachePresenceMeta,
    "compression": CompressionMeta,
    "client_cache": ClientCacheMeta,
    "assets_counts": AssetCountsMeta,
    "render_blocking": RenderBlockingMeta,
    "images_dims_and_size": ImagesMeta,
    "ttfb": TTFBMeta,
    "h2_h3": ProtocolMeta,
    "autoload_size": AutoloadMeta,
    "postmeta_bloat": PostmetaMeta,
    "transients": TransientsMeta,
    "updates_core": UpdatesMeta,
    "updates_plugins": UpdatesMeta,
    "updates_themes": UpdatesMeta,
}

# Display labels for each check slug
CHECK_LABELS: dict[str, str] = {
    "cache_present": "Page Cache Present",
    "compression": "HTTP Compression",
    "client_cache": "Browser Cache (Assets)",
    "assets_counts": "CSS/JS Requests",
    "render_blocking": "Render-Blocking Resources",
    "images_dims_and_size": "Image Dimensions / Next-Gen",
    "ttfb": "TTFB",
    "h2_h3": "HTTP/2 / HTTP/3",
    "autoload_size": "Autoloaded Options Size",
    "postmeta_bloat": "Postmeta Bloat",
    "transients": "Expired Transients",
    "updates_core": "Core Updates",
    "updates_plugins": "Plugin Updates",
    "updates_themes": "Theme Updates",
}


@dataclass
class CacheLayersReport:
    """
    Every caching layer found in front of or inside the site.

    Plugin maps are plugin file -> label. ``risks`` name overlapping
    layers; ``recommendations`` are the matching next steps. Not scored.
    """

    page_cache_plugins: dict[str, str] = field(default_factory=dict)
    object_cache_plugins: dict[str, str] = field(default_factory=dict)
    dropins: list[str] = field(default_factory=list)
    cdn: list[str] = field(default_factory=list)
    server_cache: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data.get("error") is None:
            data.pop("error", None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheLayersReport:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
