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
Main entry point for the CareerCraft CLI.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Set

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.prompt import Confirm, Prompt

from careercraft import views
from careercraft.audio import VoiceBriefing
from careercraft.config import Settings, home_dir, load_env, set_ca_bundle_override
from careercraft.controller import AppController
from careercraft.exporter import ResumeExporter, default_filename, display_name
from careercraft.ingest import read_job_description, read_resume
from careercraft.llm_client import AIClient
from careercraft.models import AppState, HistoryRecord
from careercraft.persistence import PersistenceClient
from careercraft.session import SessionStore

logger = logging.getLogger(__name__)

# Analyses abandoned by Ctrl-C, kept alive until their worker thread returns
_detached: Set[asyncio.Task] = set()

ABOUT_TEXT = (
    "CareerCraft AI compares your résumé with a target job, scores ATS compatibility, "
    "rewrites your strongest bullets and plans how to close the skill gap."
)
PRIVACY_TEXT = (
    "Résumés and job descriptions are sent to the AI provider for analysis. "
    "When you are signed in, each analysis is stored in your account history."
)


def setup_logging(verbosity: int, quiet: bool = False, log_dir: Path = Path("user_content/logs"),
                  console: Optional[Console] = None) -> None:
    """
    Configures logging:
    - File: user_content/logs/careercraft.log (DEBUG)
    - Console: Default=WARNING, -q=ERROR, -v=INFO, -vv=DEBUG
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_dir / "careercraft.log")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    root.addHandler(file_handler)

    if quiet:
        level = logging.ERROR
    elif verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    console_handler = RichHandler(console=console, show_path=False, markup=False)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root.addHandler(console_handler)

    # Silence noisy HTTP libraries unless in super debug
    if verbosity < 3:
        for name in ("httpx", "httpcore", "urllib3"):
            logging.getLogger(name).setLevel(logging.WARNING)


async def ask(*args, **kwargs) -> str:
    """Prompt.ask without blocking the event loop."""
    return await asyncio.to_thread(Prompt.ask, *args, **kwargs)


def build_controller(settings: Settings):
    """Wires the services together. Returns (controller, ai)."""
    ai = AIClient(settings)
    sessions = SessionStore(settings)
    persistence = PersistenceClient(settings, sessions) if settings.backend_configured else None
    controller = AppController(ai, sessions, persistence, timeout=settings.analysis_timeout)
    return controller, ai


async def run_analysis(controller: AppController, console: Console) -> bool:
    """
    Runs analyze() while a live view shows progress.

    Ctrl-C while the analysis is in flight cancels it and returns to the
    upload screen. asyncio.run delivers the first Ctrl-C as a cancellation of
    the main task; a second one still exits the program.
    """
    task = asyncio.create_task(controller.analyze())
    try:
        with Live(views.render(controller), console=console, refresh_per_second=4, transient=True) as live:
            while not task.done():
                live.update(views.render(controller))
                await asyncio.sleep(0.25)
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if task.done() or current is None or current.uncancel() > 0:
            raise
        controller.cancel_analysis()
        # The worker thread cannot be interrupted; its late result is discarded
        _detached.add(task)
        task.add_done_callback(_detached.discard)
        console.print("[yellow]Analysis cancelled.[/yellow]")
        return False
    return task.result()


def export_resume(controller: AppController, output: Optional[str], console: Console) -> Optional[str]:
    if controller.result is None or controller.parsed_resume is None:
        console.print("[yellow]Nothing to export yet.[/yellow]")
        return None
    session = controller.session
    name = display_name(controller.parsed_resume, session.display_name if session else None)
    path = output or str(Path(default_filename(name)))
    try:
        ResumeExporter().export(controller.parsed_resume, controller.result, path,
                                session.display_name if session else None)
    except Exception as e:
        logger.error(f"Export failed: {e}")
        return None
    console.print(f"[green]Saved[/green] {path}")
    return path


async def auth_flow(controller: AppController, console: Console) -> None:
    """Drives the auth modal until it is closed or the user backs out."""

    while controller.auth_prompt:
        console.print(views.auth_modal(controller.auth_prompt, controller.auth_error, controller.auth_notice))

        if controller.auth_prompt == "recovery":
            password = await ask("New password", password=True)
            if not password:
                controller.close_auth_prompt()
                return
            await controller.confirm_password_reset(password)
            continue

        choice = await ask("Auth", choices=["signin", "signup", "forgot", "code", "back"], default="signin")
        if choice == "back":
            controller.close_auth_prompt()
            return
        email = await ask("Email")
        if choice == "signin":
            password = await ask("Password", password=True)
            await controller.sign_in(email, password)
        elif choice == "signup":
            name = await ask("Full name")
            password = await ask("Password", password=True)
            if await controller.sign_up(email, password, name) and not controller.is_authenticated:
                console.print(views.auth_modal("auth", None, controller.auth_notice))
                controller.close_auth_prompt()
        elif choice == "forgot":
            await controller.request_password_reset(email)
        elif choice == "code":
            token = await ask("Recovery code from the email")
            await controller.verify_recovery(email, token)


async def contact_flow(controller: AppController, console: Console) -> None:
    error = None
    while True:
        console.print(views.contact_modal(error))
        name = await ask("Name")
        email = await ask("Email")
        message = await ask("Message")
        error = await controller.submit_contact_message(name, email, message)
        if error is None:
            console.print(views.contact_modal(sent=True))
            return
        if not await asyncio.to_thread(Confirm.ask, "Try again?", default=True):
            return


def _actions(controller: AppController) -> List[str]:
    state = controller.state
    actions: List[str] = []
    if state is AppState.IDLE:
        actions += ["start"]
    elif state is AppState.UPLOADING:
        actions += ["resume", "title", "jd", "analyze", "home"]
    elif state is AppState.RESULT:
        actions += ["preview", "roadmap", "voice", "export", "new"]
    elif state is AppState.VIEWING_RESUME:
        actions += ["back", "export"]
    elif state is AppState.ROADMAP:
        actions += ["back", "voice"]
    elif state is AppState.HISTORY:
        actions += ["open", "home"]
    if controller.is_authenticated:
        actions += ["history", "logout"]
    elif controller.sessions.settings.backend_configured:
        actions += ["login"]
    actions += ["contact", "about", "privacy", "quit"]
    return actions


async def run_shell(controller: AppController, ai: AIClient, settings: Settings, console: Console) -> None:
    voice = VoiceBriefing(ai, settings.home / "briefings")
    records: List[HistoryRecord] = []
    background: Set[asyncio.Task] = set()

    def spawn(coro) -> None:
        task = asyncio.create_task(coro)
        background.add(task)
        task.add_done_callback(background.discard)

    while True:
        console.print(views.render(controller, records))
        if controller.auth_prompt:
            await auth_flow(controller, console)
            continue

        action = await ask("Action", choices=_actions(controller))
        controller.dismiss_error()

        if action == "quit":
            return
        elif action in ("start", "new"):
            if action == "new":
                controller.reset()
            controller.navigate(AppState.UPLOADING)
        elif action == "home":
            controller.navigate(AppState.IDLE)
        elif action == "resume":
            path = await ask("Résumé file (.txt, .docx, .pdf)")
            text = await asyncio.to_thread(read_resume, path)
            if not text:
                console.print(f"[red]Could not read text from {path}[/red]")
                continue
            controller.submit_resume(text)
            spawn(controller.prefetch_resume())
        elif action == "title":
            controller.set_job_title(await ask("Job title"))
        elif action == "jd":
            source = await ask("Job description file or URL")
            controller.set_job_description(await asyncio.to_thread(read_job_description, source))
        elif action == "analyze":
            await run_analysis(controller, console)
        elif action == "preview":
            controller.navigate(AppState.VIEWING_RESUME)
        elif action == "roadmap":
            controller.navigate(AppState.ROADMAP)
        elif action == "back":
            controller.navigate(AppState.RESULT)
        elif action == "export":
            export_resume(controller, None, console)
        elif action == "voice":
            if controller.result is not None:
                text = controller.result.voice_briefing_text or controller.result.tailored_summary
                spawn(voice.play(text))
        elif action == "history":
            if controller.navigate(AppState.HISTORY):
                records = await controller.load_history()
        elif action == "open":
            index = await ask("Record #")
            if index.isdigit() and 1 <= int(index) <= len(records):
                controller.select_history_entry(records[int(index) - 1])
        elif action == "login":
            controller.open_auth_prompt()
        elif action == "logout":
            await controller.sign_out()
            records = []
        elif action == "contact":
            await contact_flow(controller, console)
        elif action == "about":
            console.print(views.info_modal("About", ABOUT_TEXT))
        elif action == "privacy":
            console.print(views.info_modal("Privacy", PRIVACY_TEXT))


async def run_once(args, controller: AppController, ai: AIClient, settings: Settings, console: Console) -> int:
    """Non-interactive mode: analyze one résumé/job pair and print the results."""
    resume_text = read_resume(args.resume)
    if not resume_text:
        logger.error(f"Could not extract text from {args.resume}")
        return 1
    job_description = read_job_description(args.jd)
    if not job_description:
        logger.error(f"Could not extract text from {args.jd}")
        return 1

    if args.email:
        password = await ask(f"Password for {args.email}", password=True)
        if not await controller.sign_in(args.email, password):
            logger.error(controller.auth_error)
            return 1

    controller.navigate(AppState.UPLOADING)
    controller.submit_resume(resume_text)
    controller.set_job_title(args.title)
    controller.set_job_description(job_description)

    if not await run_analysis(controller, console):
        console.print(views.error_banner(controller.error or "Analysis failed."))
        return 1

    console.print(views.results(controller.result, controller.job_title))
    console.print(views.roadmap(controller.result))

    if args.export:
        export_resume(controller, args.export, console)
    if args.voice:
        await VoiceBriefing(ai, settings.home / "briefings").play(
            controller.result.voice_briefing_text or controller.result.tailored_summary
        )
    await controller.drain()
    return 0


async def _main_async(args, settings: Settings, console: Console) -> int:
    controller, ai = build_controller(settings)
    with controller:
        if settings.backend_configured:
            await asyncio.to_thread(controller.sessions.restore)
        if args.resume or args.jd or args.title:
            if not (args.resume and args.jd and args.title):
                logger.error("--resume, --title and --jd must be given together.")
                return 2
            return await run_once(args, controller, ai, settings, console)
        await run_shell(controller, ai, settings, console)
        await controller.drain()
    return 0


def main():
    parser = argparse.ArgumentParser(description="AI résumé analysis and career roadmap")
    parser.add_argument("--resume", help="Résumé file (.txt, .docx, .pdf)")
    parser.add_argument("--title", help="Target job title")
    parser.add_argument("--jd", help="URL or file path to the job description")
    parser.add_argument("--export", help="Write the optimized résumé to this DOCX file")
    parser.add_argument("--voice", action="store_true", help="Play the voice briefing after analysis")
    parser.add_argument("--email", help="Sign in with this account so the analysis is saved")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase output verbosity (-v=INFO, -vv=DEBUG, -vvv=DEBUG incl. HTTP)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show errors")
    parser.add_argument("--ca-bundle", help="Path to a custom CA certificate bundle (proxy environments)")
    args = parser.parse_args()

    # Handlers first so configuration warnings reach the log file
    load_env()
    console = Console()
    setup_logging(args.verbose, quiet=args.quiet, log_dir=home_dir() / "logs", console=console)
    if args.ca_bundle:
        set_ca_bundle_override(args.ca_bundle)
    settings = Settings.from_env()

    try:
        sys.exit(asyncio.run(_main_async(args, settings, console)))
    except KeyboardInterrupt:
        sys.stderr.write("\n\033[31m[-] Cancelled by user\033[0m\n")
        sys.exit(130)


if __name__ == "__main__":
    main()
