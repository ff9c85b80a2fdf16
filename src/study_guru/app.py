"""Interactive CLI application."""
from datetime import datetime

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from study_guru.config import get_settings
from study_guru.dashboard import (
    calc_overall_coverage, get_coverage_color, get_coverage_label,
    get_memory_overview, get_subject_coverage, get_study_stats,
)
from study_guru.db import init_db
from study_guru.errors import GuruError, StudyGuruError
from study_guru.fsrs_scheduler import retrievability
from study_guru.guru import GuruClient
from study_guru.log import setup_logging
from study_guru.models import MOODS, Agenda, Topic
from study_guru.profile import (
    checkin_today, get_daily_log, get_days_to_exam, get_user_profile, update_streak,
)
from study_guru.review import ReviewOutcome, record_review
from study_guru.seed import is_seeded, seed_all
from study_guru.session_planner import build_pyq_sprint, build_session
from study_guru.sessions import create_session, end_session, log_external_session
from study_guru.study_plan import generate_study_plan, get_todays_agenda_with_times
from study_guru.topics import get_topics_due_for_review, record_wrong_answer
from study_guru.xp import award_session_xp, get_level_info

console = Console()

EXIT_WORDS = ("q", "menu")
CONFIDENCE_CHOICES = ["0", "1", "2", "3", "4", "5"]
QUIZ_QUESTIONS = 5
PLAN_DAYS_SHOWN = 14


class SessionExitRequested(Exception):
    """Raised when the user types q or menu in the middle of a flow."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = Prompt.ask(prompt)
    while answer.strip().lower() not in EXIT_WORDS and answer.strip() not in choices:
        console.print(f"[red]Choose one of {', '.join(choices)} (or q to stop)[/red]")
        answer = Prompt.ask(prompt)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return int(answer)


def show_welcome(db_path: str):
    profile = get_user_profile(db_path)
    days = get_days_to_exam(profile.inicet_date)
    console.print(Panel(
        f"[bold]Welcome back, {profile.display_name}[/bold]\n"
        f"[dim]INICET in {days} days | streak {profile.streak_current}[/dim]",
        title="Study Guru", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("session", "Guru-planned study session"),
        ("sprint", "PYQ sprint (timed quiz)"),
        ("review", "Topics due for review"),
        ("plan", "Day-by-day plan to the exam"),
        ("today", "Today's schedule with times"),
        ("dashboard", "Coverage, level and stats"),
        ("log", "Log study done outside the app"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<12}[/cyan] {desc}")


def describe_outcome(outcome: ReviewOutcome) -> str:
    return (
        f"[dim]next review {outcome.next_review_date:%b %d}, "
        f"FSRS due {outcome.card.due.astimezone():%b %d}[/dim]"
    )


def show_agenda(agenda: Agenda):
    table = Table(title=agenda.focus_note or "Agenda")
    table.add_column("Topic", style="cyan")
    table.add_column("Subject")
    table.add_column("Do")
    table.add_column("Min", justify="right")
    for item in agenda.items:
        table.add_row(
            item.topic.name, item.topic.subject_code,
            ", ".join(item.content_types), str(item.estimated_minutes),
        )
    console.print(Panel(agenda.guru_message, title=f"Guru ({agenda.mode})", border_style="magenta"))
    console.print(table)


def show_content(db_path: str, guru: GuruClient | None, topic: Topic, content_type: str):
    if guru is None or content_type == "manual":
        console.print(f"[dim]Open your notes for {topic.name} ({content_type}).[/dim]")
        return
    try:
        content = guru.generate_content(db_path, topic, content_type)
    except GuruError as e:
        logger.warning("Content for {} unavailable: {}", topic.name, e)
        console.print(f"[yellow]Guru is offline ({e}). Use your notes for {topic.name}.[/yellow]")
        return
    body = "\n".join(f"[bold]{k}[/bold]: {v}" for k, v in content.items() if k != "type")
    console.print(Panel(body, title=f"{topic.name}: {content_type}", border_style="cyan"))


def run_topic(db_path: str, guru: GuruClient | None, topic: Topic, content_types: list[str]) -> tuple[int, int] | None:
    """Walk one topic's content, then record the self-rating. Returns quiz (correct, total) if quizzed."""
    for content_type in content_types:
        show_content(db_path, guru, topic, content_type)
        session_prompt("[dim]Press Enter to continue[/dim]", default="")
    quiz = None
    if "quiz" in content_types:
        correct = session_int_prompt(
            f"Quiz: correct answers out of {QUIZ_QUESTIONS}",
            choices=[str(n) for n in range(QUIZ_QUESTIONS + 1)],
        )
        if correct < QUIZ_QUESTIONS / 2:
            record_wrong_answer(db_path, topic.id)
        quiz = (correct, QUIZ_QUESTIONS)
    confidence = session_int_prompt("Confidence (0=blank, 3=shaky, 5=solid)", choices=CONFIDENCE_CHOICES)
    outcome = record_review(db_path, topic.id, confidence)
    console.print(f"[green]{topic.name}: {outcome.status}[/green] {describe_outcome(outcome)}")
    return quiz


def run_agenda(db_path: str, agenda: Agenda, mood: str | None, guru: GuruClient | None):
    started = datetime.now()
    log = get_daily_log(db_path)
    first_today = log is None or log.session_count == 0
    session_id = create_session(db_path, [i.topic.id for i in agenda.items], mood, agenda.mode, started)
    completed = []
    quiz_results = []
    try:
        for n, item in enumerate(agenda.items, 1):
            console.print(f"\n[bold]{n}/{len(agenda.items)}. {item.topic.name}[/bold] [dim]({item.topic.subject_name})[/dim]")
            quiz = run_topic(db_path, guru, item.topic, item.content_types)
            completed.append(item.topic)
            if quiz:
                quiz_results.append(quiz)
    except SessionExitRequested:
        console.print("[dim]Session stopped. Progress so far is saved.[/dim]")

    minutes = max(1, round((datetime.now() - started).total_seconds() / 60))
    reward = award_session_xp(db_path, completed, quiz_results, first_today and bool(completed))
    end_session(db_path, session_id, [t.id for t in completed], reward.total, minutes)
    if completed:
        update_streak(db_path, studied_today=True)
    for label, amount in reward.breakdown:
        console.print(f"  [yellow]+{amount}[/yellow] {label}")
    console.print(f"[bold]Session XP: {reward.total}[/bold]")


def cmd_session(db_path: str, guru: GuruClient | None):
    mood = Prompt.ask("How are you feeling?", choices=list(MOODS), default="good")
    checkin_today(db_path, mood)
    agenda = build_session(db_path, mood, planner=guru)
    show_agenda(agenda)
    run_agenda(db_path, agenda, mood, guru)


def cmd_sprint(db_path: str, guru: GuruClient | None):
    agenda = build_pyq_sprint(db_path)
    show_agenda(agenda)
    run_agenda(db_path, agenda, None, guru)


def cmd_review(db_path: str):
    due = get_topics_due_for_review(db_path, limit=10)
    if not due:
        console.print("[green]Nothing due for review. Nice.[/green]")
        return
    table = Table(title="Due for Review")
    table.add_column("Topic", style="cyan")
    table.add_column("Subject")
    table.add_column("Confidence", justify="right")
    table.add_column("Due")
    table.add_column("Recall", justify="right")
    table.add_column("FSRS due")
    now = datetime.now()
    for t in due:
        due_on = t.progress.next_review_date
        card = t.progress.card
        table.add_row(
            t.name, t.subject_code, str(t.progress.confidence),
            f"{due_on:%b %d}" if due_on else "now",
            f"{retrievability(card, now):.0%}" if card else "-",
            f"{card.due.astimezone():%b %d}" if card else "-",
        )
    console.print(table)
    try:
        for t in due:
            confidence = session_int_prompt(f"{t.name}: confidence", choices=CONFIDENCE_CHOICES)
            outcome = record_review(db_path, t.id, confidence)
            console.print(f"  [green]{outcome.status}[/green] {describe_outcome(outcome)}")
    except SessionExitRequested:
        console.print("[dim]Back to menu.[/dim]")


def cmd_plan(db_path: str):
    plan, summary = generate_study_plan(db_path)
    color = "green" if summary.feasible else "red"
    console.print(Panel(
        f"[{color}]{summary.message}[/{color}]\n"
        f"{summary.days_remaining} days left | {summary.total_hours_left}h planned | "
        f"{summary.required_hours_per_day}h/day | {summary.total_topics_left} topics unplaced",
        title="Study Plan", border_style=color,
    ))
    table = Table()
    table.add_column("Day")
    table.add_column("New", justify="right")
    table.add_column("Review", justify="right")
    table.add_column("Deep dive", justify="right")
    table.add_column("Min", justify="right")
    for day in plan[:PLAN_DAYS_SHOWN]:
        if day.is_rest_day:
            table.add_row(day.day_label, "", "", "", "[dim]rest[/dim]")
            continue
        counts = {kind: sum(1 for i in day.items if i.type == kind) for kind in ("study", "review", "deep_dive")}
        table.add_row(
            day.day_label, str(counts["study"]), str(counts["review"]), str(counts["deep_dive"]),
            str(day.total_minutes),
        )
    console.print(table)


def cmd_today(db_path: str):
    raw = Prompt.ask("Minutes available today (Enter for the full plan)", default="")
    available = int(raw) if raw.strip().isdigit() else None
    tasks = get_todays_agenda_with_times(db_path, available)
    if not tasks:
        console.print("[green]Nothing scheduled for today.[/green]")
        return
    table = Table(title="Today")
    table.add_column("When")
    table.add_column("Topic", style="cyan")
    table.add_column("Type")
    table.add_column("Min", justify="right")
    for task in tasks:
        table.add_row(task.time_label, task.topic.name, task.type, str(task.duration))
    console.print(table)


def cmd_dashboard(db_path: str):
    profile = get_user_profile(db_path)
    level = get_level_info(profile.total_xp)
    stats = get_study_stats(db_path)
    overall = calc_overall_coverage(db_path)
    color = get_coverage_color(overall)

    console.print(Panel(
        f"[bold]Level {level.level}: {level.name}[/bold]  {profile.total_xp} XP "
        f"({level.progress:.0%} to next)\n"
        f"Streak {profile.streak_current} (best {profile.streak_best}) | "
        f"INICET in {get_days_to_exam(profile.inicet_date)} days",
        title="Dashboard", border_style="blue",
    ))

    bar_filled = int(overall / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(f"\n  Weighted coverage: [bold]{overall}%[/bold] {bar} [{color}]{get_coverage_label(overall)}[/{color}]\n")

    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Covered", justify="right")
    table.add_column("Mastered", justify="right")
    table.add_column("Status")
    for s in get_subject_coverage(db_path):
        sc_color = get_coverage_color(s["coverage"])
        table.add_row(
            s["name"], f"{s['covered']}/{s['total']}", str(s["mastered"]),
            f"[{sc_color}]{s['label']}[/{sc_color}]",
        )
    console.print(table)

    console.print(f"\n  Sessions: [bold]{stats['sessions_completed']}[/bold]  |  "
                  f"Minutes: [bold]{stats['minutes_studied']}[/bold]  |  "
                  f"Topics: [bold]{stats['topics_studied']}[/bold]  |  "
                  f"Nemesis: [bold]{stats['nemesis_topics']}[/bold]  |  "
                  f"Avg confidence: [bold]{stats['avg_confidence']}[/bold]")

    memory = get_memory_overview(db_path)
    if memory:
        mem_table = Table(title="Fading memory")
        mem_table.add_column("Topic", style="cyan")
        mem_table.add_column("Subject")
        mem_table.add_column("Recall", justify="right")
        mem_table.add_column("FSRS due")
        for row in memory:
            due_label = "now" if row["fsrs_due_now"] else f"{row['fsrs_due'].astimezone():%b %d}"
            mem_table.add_row(row["name"], row["short_code"], f"{row['retrievability']:.0%}", due_label)
        console.print(mem_table)


def cmd_log(db_path: str):
    try:
        source = session_prompt("What did you study? (q to cancel)", default="Video lecture")
        raw = session_prompt("Minutes", default="30")
    except SessionExitRequested:
        return
    if not raw.strip().isdigit():
        console.print("[red]Minutes must be a whole number.[/red]")
        return
    minutes = int(raw)
    log_external_session(db_path, source.strip() or "External", minutes)
    if minutes > 0:
        update_streak(db_path, studied_today=True)
    console.print(f"[green]Logged {minutes} min of {source.strip() or 'study'}.[/green]")


def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    db_path = settings.db_path
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    guru = GuruClient(settings) if settings.gemini_api_key or settings.openrouter_api_key else None
    if guru is None:
        console.print("[dim]No AI key configured; sessions use score order.[/dim]")

    show_welcome(db_path)

    try:
        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="session").strip().lower()
            try:
                if choice == "session":
                    cmd_session(db_path, guru)
                elif choice == "sprint":
                    cmd_sprint(db_path, guru)
                elif choice == "review":
                    cmd_review(db_path)
                elif choice == "plan":
                    cmd_plan(db_path)
                elif choice == "today":
                    cmd_today(db_path)
                elif choice == "dashboard":
                    cmd_dashboard(db_path)
                elif choice == "log":
                    cmd_log(db_path)
                elif choice in ("quit", "exit", "q"):
                    console.print("[dim]See you tomorrow, doctor.[/dim]")
                    break
                else:
                    console.print("[red]Unknown command. Try again.[/red]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except StudyGuruError as e:
                console.print(f"[yellow]{e}[/yellow]")
            except Exception as e:
                logger.exception("Command {} failed", choice)
                console.print(f"[red]Error: {e}[/red]")
    finally:
        if guru is not None:
            guru.close()


if __name__ == "__main__":
    main()
