"""Resume document as stored by the builder."""

import os
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import uuid


class Resume(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    template_id: str = "modern"
    personal_info: Dict[str, Any] = Field(default_factory=dict)
    experience: List[Dict[str, Any]] = Field(default_factory=list)
    education: List[Dict[str, Any]] = Field(default_factory=list)
    skills: List[Dict[str, Any]] = Field(default_factory=list)
    projects: List[Dict[str, Any]] = Field(default_factory=list)
    certifications: List[Dict[str, Any]] = Field(default_factory=list)
    imported_template: Optional[Dict[str, Any]] = None
    linkedin_data: Optional[Dict[str, Any]] = None
    pdf_url: Optional[str] = None
    preview_url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def apply_imported_template(self, layout: Dict[str, Any], file_path: str, file_url: Optional[str]) -> None:
        """Attach a parsed template layout and take over any sections it carries."""
        self.template_id = "imported"
        self.imported_template = {
            "original_name": os.path.basename(file_path),
            "file_url": file_url,
            "parsed_layout": layout,
            "imported_at": datetime.utcnow().isoformat(),
        }
        for section in ("experience", "education", "skills", "projects", "certifications"):
            if layout.get(section):
                setattr(self, section, list(layout[section]))

    def apply_parsed_profile(self, parsed: Dict[str, Any], source: str, profile_url: str = "") -> None:
        """Fill the resume sections from a parsed LinkedIn profile."""
        self.linkedin_data = {
            "parsed_data": parsed,
            "imported_at": datetime.utcnow().isoformat(),
            "import_source": source,
        }
        self.personal_info = {
            **self.personal_info,
            "full_name": parsed.get("name") or "",
            "summary": parsed.get("summary") or "",
            "linkedin": profile_url,
        }
        for section in ("experience", "education", "skills", "projects", "certifications"):
            setattr(self, section, list(parsed.get(section) or []))

    def apply_ats_improvements(self, improvements: Dict[str, Any]) -> None:
        """Apply a rewrite: new summary, per-position rewrites, missing keywords."""
        if improvements.get("suggested_summary"):
            self.personal_info = {**self.personal_info, "summary": improvements["suggested_summary"]}

        rewrites = improvements.get("improved_experience") or []
        for exp, rewrite in zip(self.experience, rewrites):
            if not isinstance(rewrite, dict):
                continue
            exp["description"] = rewrite.get("description") or exp.get("description")
            exp["achievements"] = rewrite.get("achievements") or exp.get("achievements")

        keywords = improvements.get("suggested_keywords") or []
        existing = {
            str(item).lower() for group in self.skills for item in group.get("items") or []
        }
        missing = [k for k in keywords if str(k).lower() not in existing]
        if missing:
            if not self.skills:
                self.skills.append({"category": "", "items": []})
            self.skills[0].setdefault("items", [])
            self.skills[0]["items"] = list(self.skills[0]["items"] or []) + missing

    def to_text(self) -> str:
        """Plain-text rendition fed to the ATS scorer."""
        lines: List[str] = []
        info = self.personal_info or {}
        lines.append(f"Name: {info.get('full_name', '')}")
        lines.append(f"Summary: {info.get('summary', '')}")
        lines.append("")

        if self.experience:
            lines.append("EXPERIENCE")
            for exp in self.experience:
                end = "Present" if exp.get("current") else exp.get("end_date", "")
                lines.append(f"{exp.get('title', '')} at {exp.get('company', '')}")
                lines.append(f"{exp.get('start_date', '')} - {end}")
                lines.append(exp.get("description", "") or "")
                for achievement in exp.get("achievements") or []:
                    lines.append(f"• {achievement}")
                lines.append("")

        if self.education:
            lines.append("EDUCATION")
            for edu in self.education:
                lines.append(f"{edu.get('degree', '')} from {edu.get('institution', '')}")
                lines.append(f"{edu.get('start_date', '')} - {edu.get('end_date', '')}")
                lines.append("")

        if self.skills:
            lines.append("SKILLS")
            for skill in self.skills:
                prefix = f"{skill['category']}: " if skill.get("category") else ""
                lines.append(prefix + ", ".join(skill.get("items") or []))

        return "\n".join(lines).strip()
