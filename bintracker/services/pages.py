"""
Bin Tracker — HTML Pages
=========================

What:  Renders the human-facing bin page shown when a label's QR code is scanned.
How:   Jinja2 templates from bintracker/templates with autoescaping, so every
       stored value (notes, case codes, ids) is HTML-escaped.
"""

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from bintracker.models.bin import Bin
from bintracker.services.bin_service import photo_url

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


def bin_title(row: Bin) -> str:
    if row.case_code:
        return f"Bin {row.bin_id} – Case {row.case_code}"
    return f"Bin {row.bin_id}"


def render_bin_page(bin_id: str, row: Optional[Bin]) -> str:
    """Page for a registered bin, or the not-registered page when row is None."""
    if row is None:
        return jinja_env.get_template("bin_missing.html").render(bin_id=bin_id)

    return jinja_env.get_template("bin.html").render(
        title=bin_title(row),
        bin=row,
        photo_url=photo_url(row.bin_id) if row.photo_key else None,
    )
