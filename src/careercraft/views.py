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
Terminal views. Each function turns controller state into a rich renderable
and has no side effects.
"""

import time
from datetime import datetime
from typing import List, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from careercraft.exporter import display_name, preview_skills, role_bullets
from careercraft.models import AnalysisResult, AppState, HistoryRecord, ResumeData

BAR_WIDTH = 30


def score_bar(label: str, score: int) -> Text:
    filled = round(BAR_WIDTH * score / 100)
    colour = "green" if score >= 75 else "yellow" if score >= 50 else "red"
    text = Text(f"{label:<22}")
    text.append("█" * filled, style=colour)
    text.append("░" * (BAR_WIDTH - filled), style="grey37")
    text.append(f" {score:>3}%", style="bold")
    return text


def format_url(url: str) -> str:
    if not url:
        return "#"
    if url.startswith("http"):
        return url
    return f"https://{url}"


def format_date(created_at: str) -> str:
    """'2026-10-16T09:30:00Z' -> 'Oct 16, 2026'. Unparseable values pass through."""
    try:
        parsed = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return created_at
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def error_banner(message: str) -> Panel:
    return Panel(Text(message, style="bold red"), title="Error", subtitle="[dim]press Enter to dismiss[/dim]",
                 border_style="red")


def dashboard() -> Panel:
    body = Text.assemble(
        ("CareerCraft AI\n\n", "bold magenta"),
        "Score your résumé against any job description, get ATS-ready rewrites\n",
        "and a week-by-week roadmap for the skills you are missing.\n\n",
        ("Choose 'start' to begin.", "italic"),
    )
    return Panel(body, border_style="magenta")


def upload_form(resume_text: str, job_title: str, job_description: str) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()

    def preview(value: str, limit: int = 80) -> Text:
        value = " ".join(value.split())
        if not value:
            return Text("(missing)", style="red")
        return Text(value if len(value) <= limit else value[:limit] + "...")

    table.add_row("Résumé", preview(resume_text))
    table.add_row("Job title", preview(job_title))
    table.add_row("Job description", preview(job_description))
    return Panel(table, title="Upload", border_style="cyan")


def analyzing(job_title: str, started_at: Optional[float], status: Optional[str]) -> Panel:
    elapsed = int(time.monotonic() - started_at) if started_at else 0
    lines = [
        Text("Intelligence Pipeline Active", style="bold"),
        Text(f"Processing strategic alignment for: {job_title or 'High Performance Role'}", style="magenta"),
        Text(f"{elapsed}s elapsed", style="dim"),
        Text("Press Ctrl-C to cancel", style="dim italic"),
    ]
    if status:
        lines.append(Text(status, style="italic cyan"))
    return Panel(Group(*lines), border_style="cyan")


def results(result: AnalysisResult, job_title: str = "") -> Group:
    scores = Group(
        score_bar("ATS compatibility", result.ats_score),
        score_bar("Readability", result.readability_score),
        score_bar("Keyword match", result.keyword_match_score),
        score_bar("Quantified impact", result.quantified_impact_score),
        score_bar("Formatting health", result.formatting_health_score),
        score_bar("Recruiter simulation", result.recruiter_simulation_score),
    )

    skills = Table(show_header=True, header_style="bold", expand=True)
    skills.add_column("Matched skills", style="green")
    skills.add_column("Missing keywords", style="red")
    for i in range(max(len(result.matched_skills), len(result.missing_keywords))):
        matched = result.matched_skills[i] if i < len(result.matched_skills) else ""
        missing = result.missing_keywords[i] if i < len(result.missing_keywords) else ""
        skills.add_row(matched, missing)

    bullets = Text("\n".join(f"• {b}" for b in result.enhanced_bullets) or "No rewrites suggested.")

    return Group(
        Panel(scores, title=f"Results{f' for {job_title}' if job_title else ''}", border_style="green"),
        skills,
        Panel(Text(result.tailored_summary), title="Tailored summary"),
        Panel(bullets, title="Enhanced bullets (STAR)"),
    )


def resume_preview(resume: ResumeData, analysis: AnalysisResult, signed_in_name: Optional[str] = None) -> Panel:
    parts: List[RenderableType] = [Text(display_name(resume, signed_in_name).upper(), style="bold")]
    contact = " • ".join(p for p in (resume.email, resume.phone) if p)
    if contact:
        parts.append(Text(contact, style="dim"))

    parts.append(Text("\nPROFESSIONAL SUMMARY", style="bold underline"))
    parts.append(Text(analysis.tailored_summary or resume.summary))

    skills = preview_skills(resume, analysis)
    if skills:
        parts.append(Text("\nCORE COMPETENCIES", style="bold underline"))
        parts.append(Text(" | ".join(skills)))

    if resume.experience:
        parts.append(Text("\nPROFESSIONAL EXPERIENCE", style="bold underline"))
        for i, job in enumerate(resume.experience):
            header = Text(job.role, style="bold")
            if job.company:
                header.append(f" | {job.company}")
            if job.duration:
                header.append(f" | {job.duration}", style="italic")
            parts.append(header)
            for bullet in role_bullets(i, job, analysis):
                parts.append(Text(f"  • {bullet}"))

    if resume.education:
        parts.append(Text("\nEDUCATION", style="bold underline"))
        for edu in resume.education:
            details = ", ".join(p for p in (edu.institution, edu.year) if p)
            parts.append(Text(f"{edu.degree}{f' | {details}' if details else ''}"))

    return Panel(Group(*parts), title="Optimized résumé", border_style="white")


def roadmap(result: AnalysisResult) -> RenderableType:
    if not result.weekly_roadmap:
        return Panel(Text("No roadmap was generated for this analysis."), title="Roadmap")

    weeks = Table(title=f"A {len(result.weekly_roadmap)}-week protocol", show_lines=True, expand=True)
    weeks.add_column("#", justify="right")
    weeks.add_column("Week")
    weeks.add_column("Goal", style="bold")
    weeks.add_column("Focus")
    for idx, item in enumerate(result.weekly_roadmap, start=1):
        weeks.add_row(str(idx), item.week, item.goal, item.focus)

    panels: List[RenderableType] = [weeks]
    for skill in result.skill_roadmaps:
        lines = [Text(f'"{skill.why_it_matters or "Strategic importance defined by market demand."}"', style="italic")]
        for step, path in enumerate(skill.learning_path, start=1):
            lines.append(Text(f"{step}. {path}"))
        if skill.practice_task:
            lines.append(Text(f"Practice: {skill.practice_task}", style="cyan"))
        for res in skill.resources:
            lines.append(Text(f"↗ {res.title}: {format_url(res.url)}", style="blue"))
        subtitle = skill.estimated_time or None
        panels.append(Panel(Group(*lines), title=skill.skill_name or "Skill", subtitle=subtitle))
    return Group(*panels)


def history(records: List[HistoryRecord]) -> RenderableType:
    if not records:
        return Panel(Text("No analyses saved yet. Run one while signed in to build your history."),
                     title="Optimization History")

    table = Table(title="Optimization History",
                  caption=f"{len(records)} Record{'s' if len(records) != 1 else ''} Found")
    table.add_column("#", justify="right")
    table.add_column("Job title", style="bold")
    table.add_column("Date")
    table.add_column("ATS", justify="right")
    for idx, record in enumerate(records, start=1):
        table.add_row(str(idx), record.job_title, format_date(record.created_at),
                      f"{record.analysis_result.ats_score}%")
    return table


def auth_modal(mode: str, error: Optional[str], notice: Optional[str]) -> Panel:
    title = "New Password" if mode == "recovery" else "Sign in"
    lines: List[RenderableType] = []
    if mode == "recovery":
        lines.append(Text("Create a secure new password for your account"))
    else:
        lines.append(Text("Sign in, create an account, or reset a forgotten password"))
    if error:
        lines.append(Text(error, style="red"))
    if notice:
        lines.append(Text(notice, style="green"))
    return Panel(Group(*lines), title=title, border_style="blue")


def contact_modal(error: Optional[str] = None, sent: bool = False) -> Panel:
    lines: List[RenderableType] = [Text("Send us a message and we will get back to you.")]
    if error:
        lines.append(Text(error, style="red"))
    if sent:
        lines.append(Text("Message sent!", style="green"))
    return Panel(Group(*lines), title="Contact", border_style="blue")


def info_modal(title: str, content: str) -> Panel:
    return Panel(Text(content), title=title, border_style="blue")


def render(controller, records: Optional[List[HistoryRecord]] = None) -> RenderableType:
    """Picks the view for the controller's current state."""
    state = controller.state
    if state is AppState.IDLE:
        body = dashboard()
    elif state is AppState.UPLOADING:
        body = upload_form(controller.resume_text, controller.job_title, controller.job_description)
    elif state is AppState.ANALYZING:
        body = analyzing(controller.job_title, controller.analysis_started_at, controller.status)
    elif state is AppState.RESULT and controller.result is not None:
        body = results(controller.result, controller.job_title)
    elif state is AppState.VIEWING_RESUME and controller.result is not None:
        session = controller.session
        body = resume_preview(controller.parsed_resume or ResumeData.placeholder(), controller.result,
                              session.display_name if session else None)
    elif state is AppState.ROADMAP and controller.result is not None:
        body = roadmap(controller.result)
    elif state is AppState.HISTORY:
        body = history(records or [])
    else:
        body = dashboard()

    parts: List[RenderableType] = []
    if controller.error:
        parts.append(error_banner(controller.error))
    parts.append(body)
    if controller.auth_prompt:
        parts.append(auth_modal(controller.auth_prompt, controller.auth_error, controller.auth_notice))
    return Group(*parts)
