"""
edubridge/services/navigation.py
Dashboard deep links for notifications

Link shape:
    /dashboard?programme=DBS&subject=DPP20023&material=42&showComments=true[&comment=7]
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit, parse_qs

DASHBOARD_PATH = "/dashboard"


@dataclass(frozen=True)
class MaterialLink:
    programme_id: str
    subject_code: str
    material_id: str
    show_comments: bool = True
    comment_id: Optional[str] = None


def build_material_link(
    programme_id: str,
    subject_code: str,
    material_id,
    show_comments: bool = True,
    comment_id=None,
    base_url: Optional[str] = None,
) -> str:
    """Build a dashboard URL that opens one material. Values are URL-encoded."""
    params = [
        ("programme", programme_id),
        ("subject", subject_code),
        ("material", str(material_id)),
        ("showComments", "true" if show_comments else "false"),
    ]
    if comment_id is not None:
        params.append(("comment", str(comment_id)))

    link = f"{DASHBOARD_PATH}?{urlencode(params)}"
    if base_url:
        link = base_url.rstrip("/") + link
    return link


def parse_material_link(url: str) -> Optional[MaterialLink]:
    """Reverse of build_material_link. None when the URL is not a material link."""
    parts = urlsplit(url)
    if parts.path.rstrip("/") != DASHBOARD_PATH:
        return None

    query = parse_qs(parts.query)

    def first(key: str) -> Optional[str]:
        values = query.get(key)
        return values[0] if values else None

    programme_id = first("programme")
    subject_code = first("subject")
    material_id = first("material")
    if not programme_id or not subject_code or not material_id:
        return None

    return MaterialLink(
        programme_id=programme_id,
        subject_code=subject_code,
        material_id=material_id,
        show_comments=(first("showComments") or "true").lower() == "true",
        comment_id=first("comment"),
    )
