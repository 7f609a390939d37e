import re
from dataclasses import dataclass
from urllib.parse import urlparse

DEFAULT_CDN_HOST = "res.cloudinary.com"

_VERSION_SEGMENT = re.compile(r"^v\d+$", re.IGNORECASE)
_EXTENSION = re.compile(r"\.([^.]+)$")


@dataclass(frozen=True)
class AssetIdentifier:
    """The parts of a CDN image URL needed to reference it in a transform"""
    cloud: str = ""
    overlay_id: str = ""
    base_asset: str = ""
    delivery: str = ""

    @property
    def usable(self) -> bool:
        return bool(self.overlay_id and self.base_asset)


EMPTY_IDENTIFIER = AssetIdentifier()


def is_cdn_image_url(url, host: str = DEFAULT_CDN_HOST) -> bool:
    return isinstance(url, str) and bool(url) and host in url


def parse_asset_identifier(url) -> AssetIdentifier:
    """Split a CDN delivery URL into cloud, overlay id and base asset.

    Accepts ``/<cloud>/image/upload/...``, ``/<cloud>/video/upload/...`` and
    the SEO short form ``/<cloud>/images/...``. Version segments (``v123``)
    and transformation segments (anything containing a comma) in front of the
    asset path are dropped. Folders become part of the overlay id joined with
    ``:``, which is how the CDN addresses layers in folders.

    Never raises: anything that does not look like a delivery URL yields an
    identifier with every field empty.
    """
    if not isinstance(url, str) or not url:
        return EMPTY_IDENTIFIER
    try:
        parsed = urlparse(url)
    except ValueError:
        return EMPTY_IDENTIFIER
    if not parsed.scheme or not parsed.netloc:
        return EMPTY_IDENTIFIER

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) < 2:
        return EMPTY_IDENTIFIER

    cloud = segments[0]
    if segments[1] == "images":
        delivery, skip = "images", 2
    elif segments[1] in ("image", "video") and len(segments) > 2 and segments[2] == "upload":
        delivery, skip = f"{segments[1]}/upload", 3
    else:
        return EMPTY_IDENTIFIER

    rest = segments[skip:]
    while rest and ("," in rest[0] or _VERSION_SEGMENT.match(rest[0])):
        rest.pop(0)
    if not rest:
        return AssetIdentifier(cloud=cloud, delivery=delivery)

    last = rest.pop()
    file_id = _EXTENSION.sub("", last)
    match = _EXTENSION.search(last)
    ext = match.group(1) if match else ""
    folders = rest

    looks_seo_short = delivery == "images" or (len(folders) == 1 and folders[0] == file_id)
    if looks_seo_short or not folders:
        overlay_id = file_id
    else:
        overlay_id = ":".join(folders + [file_id])

    base_asset = f"{file_id}.{ext}" if ext else file_id
    return AssetIdentifier(cloud=cloud, overlay_id=overlay_id, base_asset=base_asset, delivery=delivery)
