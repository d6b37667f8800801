# Copyright 2026 Justin Cook
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exports the optimized résumé as an ATS-friendly MS Word (DOCX) document.
"""

import logging
import re
from typing import List, Optional

from docx import Document
from docx.shared import Pt

from careercraft.models import PLACEHOLDER_NAME, AnalysisResult, Experience, ResumeData

logger = logging.getLogger(__name__)

MAX_PREVIEW_SKILLS = 18
FOOTER_TEXT = "Optimized for ATS Integrity via CareerCraft AI"


def display_name(resume: ResumeData, signed_in_name: Optional[str] = None) -> str:
    return signed_in_name or resume.name or PLACEHOLDER_NAME


def preview_skills(resume: ResumeData, analysis: AnalysisResult) -> List[str]:
    """Résumé skills followed by matched skills, de-duplicated, capped at 18."""
    merged = list(dict.fromkeys(resume.skills + analysis.matched_skills))
    return merged[:MAX_PREVIEW_SKILLS]


def role_bullets(index: int, job: Experience, analysis: AnalysisResult) -> List[str]:
    """The most recent role shows the rewritten bullets; the rest keep their own."""
    if index == 0 and analysis.enhanced_bullets:
        return analysis.enhanced_bullets
    return job.description


def default_filename(name: str) -> str:
    safe_name = re.sub(r'\s+', '_', name.strip()) or "Candidate"
    return f"{safe_name}_CareerCraft_Optimized.docx"


class ResumeExporter:
    """
    Writes ResumeData plus the tailored AnalysisResult to DOCX.
    Single column, standard fonts, no tables: the layout ATS parsers read best.
    """
    def __init__(self):
        self.styles = {
            'title': 'Title',
            'h1': 'Heading 1',
            'body': 'Normal',
            'bullet': 'List Bullet',
        }

    def _setup_styles(self, document) -> None:
        style = document.styles['Normal']
        style.font.name = 'Times New Roman'
        style.font.size = Pt(11)

    def _heading(self, document, text: str) -> None:
        p = document.add_paragraph(text, style=self.styles['h1'])
        p.paragraph_format.keep_with_next = True

    def export(self, resume: ResumeData, analysis: AnalysisResult, output_filename: str,
               signed_in_name: Optional[str] = None) -> str:
        document = Document()
        self._setup_styles(document)

        # --- HEADER ---
        document.add_paragraph(display_name(resume, signed_in_name), style=self.styles['title'])
        contact = " • ".join(part for part in (resume.email, resume.phone) if part)
        if contact:
            document.add_paragraph(contact)

        # --- SUMMARY ---
        self._heading(document, 'PROFESSIONAL SUMMARY')
        document.add_paragraph(analysis.tailored_summary or resume.summary)

        # --- CORE COMPETENCIES ---
        skills = preview_skills(resume, analysis)
        if skills:
            self._heading(document, 'CORE COMPETENCIES')
            document.add_paragraph(" | ".join(skills))

        # --- PROFESSIONAL EXPERIENCE ---
        if resume.experience:
            self._heading(document, 'PROFESSIONAL EXPERIENCE')
            for i, job in enumerate(resume.experience):
                p = document.add_paragraph()
                p.add_run(job.role).bold = True
                if job.company:
                    p.add_run(f" | {job.company}")
                if job.duration:
                    p.add_run(f" | {job.duration}").italic = True
                p.paragraph_format.keep_with_next = True

                for bullet in role_bullets(i, job, analysis):
                    b = document.add_paragraph(bullet, style=self.styles['bullet'])
                    b.paragraph_format.widow_control = True

        # --- EDUCATION ---
        if resume.education:
            self._heading(document, 'EDUCATION')
            for edu in resume.education:
                p = document.add_paragraph()
                p.add_run(edu.degree).bold = True
                details = ", ".join(part for part in (edu.institution, edu.year) if part)
                if details:
                    p.add_run(f" | {details}")

        footer = document.add_paragraph(FOOTER_TEXT)
        footer.runs[0].italic = True

        document.save(output_filename)
        logger.info(f"Résumé exported successfully: {output_filename}")
        return output_filename
