"""Draws a resume onto A4 pages with Pillow and saves them as one PDF."""

from typing import Any, Dict, List, Optional, Tuple
from PIL import Image, ImageDraw, ImageFont

# A4 at 150 dpi
PAGE_SIZE = (1240, 1754)
MARGIN = 90
DPI = 150.0

# Accent colors per template id
TEMPLATE_ACCENTS: Dict[str, Tuple[int, int, int]] = {
    "modern": (37, 99, 235),
    "classic": (30, 30, 30),
    "minimal": (90, 90, 90),
    "creative": (190, 24, 93),
}

TEXT_COLOR = (51, 51, 51)
MUTED_COLOR = (110, 110, 110)


class _PageWriter:
    """Flows lines of text down A4 pages, starting a new page when full."""

    def __init__(self, accent: Tuple[int, int, int]):
        self.accent = accent
        self.pages: List[Image.Image] = []
        self._new_page()

    def _new_page(self) -> None:
        page = Image.new("RGB", PAGE_SIZE, (255, 255, 255))
        self.pages.append(page)
        self.draw = ImageDraw.Draw(page)
        self.y = MARGIN

    def _ensure_room(self, height: int) -> None:
        if self.y + height > PAGE_SIZE[1] - MARGIN:
            self._new_page()

    def text(self, text: str, size: int, color=TEXT_COLOR, spacing: int = 8) -> None:
        font = _get_font(size)
        for line in _wrap(self.draw, text, font, PAGE_SIZE[0] - 2 * MARGIN):
            self._ensure_room(size + spacing)
            self.draw.text((MARGIN, self.y), line, fill=color, font=font)
            self.y += size + spacing

    def heading(self, title: str) -> None:
        self.gap(18)
        self._ensure_room(60)
        self.text(title.upper(), 30, color=self.accent, spacing=6)
        self.draw.line(
            [(MARGIN, self.y), (PAGE_SIZE[0] - MARGIN, self.y)],
            fill=(229, 231, 235),
            width=2,
        )
        self.y += 14

    def gap(self, height: int) -> None:
        self.y += height


def render_resume_pdf(resume: Dict[str, Any], output_path: str, template_id: str = "modern") -> int:
    """Render resume sections to `output_path`. Returns the page count."""
    writer = _PageWriter(TEMPLATE_ACCENTS.get(template_id, TEMPLATE_ACCENTS["modern"]))
    info = resume.get("personal_info") or {}

    writer.text(info.get("full_name") or "Your Name", 52, color=writer.accent)
    contact = " | ".join(
        str(info[k]) for k in ("email", "phone", "location", "linkedin") if info.get(k)
    )
    if contact:
        writer.text(contact, 22, color=MUTED_COLOR)
    if info.get("summary"):
        writer.gap(10)
        writer.text(info["summary"], 24)

    experience = resume.get("experience") or []
    if experience:
        writer.heading("Experience")
        for exp in experience:
            writer.text(exp.get("title") or "", 27)
            writer.text(exp.get("company") or "", 23, color=MUTED_COLOR)
            end = "Present" if exp.get("current") else exp.get("end_date") or ""
            writer.text(f"{exp.get('start_date') or ''} - {end}", 20, color=MUTED_COLOR)
            if exp.get("description"):
                writer.text(exp["description"], 23)
            for achievement in exp.get("achievements") or []:
                writer.text(f"• {achievement}", 23)
            writer.gap(12)

    education = resume.get("education") or []
    if education:
        writer.heading("Education")
        for edu in education:
            writer.text(edu.get("degree") or "", 27)
            writer.text(edu.get("institution") or "", 23, color=MUTED_COLOR)
            writer.text(f"{edu.get('start_date') or ''} - {edu.get('end_date') or ''}", 20, color=MUTED_COLOR)
            writer.gap(12)

    skills = [item for group in resume.get("skills") or [] for item in group.get("items") or []]
    if skills:
        writer.heading("Skills")
        writer.text(", ".join(skills), 23)

    projects = resume.get("projects") or []
    if projects:
        writer.heading("Projects")
        for project in projects:
            writer.text(project.get("name") or "", 25)
            if project.get("description"):
                writer.text(project["description"], 23)
            writer.gap(8)

    certifications = resume.get("certifications") or []
    if certifications:
        writer.heading("Certifications")
        for cert in certifications:
            issuer = f" ({cert['issuer']})" if cert.get("issuer") else ""
            writer.text(f"{cert.get('name') or ''}{issuer}", 23)

    first, *rest = writer.pages
    first.save(output_path, "PDF", resolution=DPI, save_all=True, append_images=rest)
    return len(writer.pages)


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> List[str]:
    """Greedy word wrap by rendered width."""
    lines: List[str] = []
    for paragraph in str(text).splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


def _get_font(size: int) -> Optional[ImageFont.FreeTypeFont]:
    """Try to load a TrueType font, falling back to default."""
    try:
        return ImageFont.truetype("arial.ttf", size)
    except OSError:
        try:
            return ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", size)
        except OSError:
            return ImageFont.load_default(size=size)
