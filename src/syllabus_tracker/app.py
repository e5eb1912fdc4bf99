"""Interactive CLI application."""
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.prompt import Prompt, Confirm

from syllabus_tracker.config import load_settings
from syllabus_tracker.dashboard import difficulty_accuracy, subjects_by
from syllabus_tracker.errors import InsufficientQuestionsError, TrackerError
from syllabus_tracker.logging_config import init_logging
from syllabus_tracker.quiz import PASS_THRESHOLD, QUIZ_LENGTH
from syllabus_tracker.sync import SyncStatus
from syllabus_tracker.tracker import Tracker

console = Console()

LETTERS = "abcd"
EXIT_WORDS = ("q", "menu")

STATUS_LABELS = {
    SyncStatus.LOCAL: "[dim]Local Only[/dim]",
    SyncStatus.SYNCING: "[yellow]Syncing...[/yellow]",
    SyncStatus.SYNCED: "[green]Synced[/green]",
    SyncStatus.ERROR: "[red]Sync Error[/red]",
}

GRID_STYLES = {
    "current": "bold reverse cyan",
    "buffer": "dim",
    "completed": "green",
    "partial": "yellow",
    "": "white",
}


class SessionExitRequested(Exception):
    """Raised when the user types q/menu in the middle of a quiz."""


def session_prompt(prompt: str, choices: list | None = None, **kwargs) -> str:
    # choices are checked here, not by rich, so that q/menu always get through
    while True:
        answer = Prompt.ask(prompt, **kwargs).strip().lower()
        if answer in EXIT_WORDS:
            raise SessionExitRequested()
        if choices is None or answer in choices:
            return answer
        console.print(f"[red]Please select one of: {', '.join(choices)}[/red]")


def celebrate(topic_id: str) -> None:
    console.print(Panel(f"[bold green]Topic complete: {topic_id}[/bold green]", border_style="green"))


def show_welcome(tracker: Tracker):
    console.print(Panel(
        f"[bold]{tracker.user.icon} {tracker.user.display_name}[/bold]\n"
        f"[dim]Day {tracker.current_day} of {tracker.user.total_days}, "
        f"{tracker.days_left} days left[/dim]",
        title="Study Plan Tracker", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Topics scheduled today"),
        ("week", "Topics for the next 7 days"),
        ("pending", "Topics not yet completed"),
        ("completed", "Completed topics"),
        ("subjects", "Progress per subject and unit"),
        ("quiz", "Take a topic quiz"),
        ("review", "Mistakes from a topic's last quiz"),
        ("toggle", "Mark a topic done/undone"),
        ("plan", "View the day-by-day plan"),
        ("dashboard", "Progress, streak and pace"),
        ("sync", "Cloud sync"),
        ("export", "Back up progress to a file"),
        ("import", "Restore progress from a file"),
        ("reset", "Clear all progress"),
        ("user", "Switch user"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def print_topics(tracker: Tracker, entries: list, title: str) -> None:
    if not entries:
        console.print(Panel("[dim]No topics. Buffer day: catch up or revise.[/dim]", title=title))
        return
    completion = tracker.progress.completion()
    table = Table(title=title)
    table.add_column("", width=2)
    table.add_column("Topic ID", style="cyan")
    table.add_column("Topic")
    table.add_column("Subject")
    table.add_column("Day", justify="right")
    for e in entries:
        mark = "[green]✓[/green]" if completion.get(e.topic.id) else ""
        table.add_row(
            mark, e.topic.id, e.topic.title,
            f"[{e.subject.color}]{e.subject.short_name}[/{e.subject.color}]" if e.subject.color
            else e.subject.short_name,
            f"D{e.topic.day}",
        )
    console.print(table)


def review_table(attempt) -> Table:
    table = Table(title=f"Review: {attempt.score}/{QUIZ_LENGTH} on {attempt.date[:10]}")
    table.add_column("Question")
    table.add_column("Your answer", style="red")
    table.add_column("Correct answer", style="green")
    for a in attempt.incorrect_answers:
        table.add_row(a.question_text, a.chosen_text, a.correct_text)
    return table


def run_quiz_session(tracker: Tracker, session) -> None:
    """Drive a started session to the end and record it. Raises SessionExitRequested on q."""
    console.print(f"\n[bold]Quiz[/bold] — {session.topic_id}, {QUIZ_LENGTH} questions, "
                  f"pass with {PASS_THRESHOLD}\n")
    pq = session.current_question
    while pq is not None:
        console.print(f"[bold]Q{session.current_index + 1}.[/bold] {pq.question.text} "
                      f"[dim]({pq.question.difficulty})[/dim]\n")
        for letter, option in zip(LETTERS, pq.options):
            console.print(f"  [cyan]{letter})[/cyan] {option}")
        answer = session_prompt("\nYour answer", choices=list(LETTERS[:len(pq.options)]))
        record = session.answer(LETTERS.index(answer))
        if record.is_correct:
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{record.correct_text}[/green]")
        console.print()
        pq = session.advance()

    attempt = tracker.finish_quiz(session)
    color = "green" if attempt.passed else "red"
    verdict = "Passed" if attempt.passed else "Not passed"
    console.print(f"[bold {color}]{verdict}: {attempt.score}/{QUIZ_LENGTH}[/bold {color}]\n")
    if attempt.incorrect_answers:
        console.print(review_table(attempt))


def cmd_topics(tracker: Tracker, view: str):
    titles = {"today": "Today", "week": "This Week", "pending": "Pending", "completed": "Completed"}
    print_topics(tracker, tracker.topics(view), titles[view])


def cmd_subjects(tracker: Tracker):
    priority = Prompt.ask("Priority filter", choices=["all", "high", "medium", "low"], default="all")
    subjects = subjects_by(tracker.curriculum, priority=None if priority == "all" else priority)
    for subject in subjects:
        stats = tracker.subject_stats(subject)
        table = Table(title=f"{subject.name} ({subject.short_name}) — {stats.completed}/{stats.total}, "
                            f"{stats.percentage}%")
        table.add_column("Unit")
        table.add_column("Done", justify="right")
        table.add_column("%", justify="right")
        for unit in subject.units:
            us = tracker.unit_stats(unit)
            table.add_row(unit.name, f"{us.completed}/{us.total}", f"{us.percentage}%")
        console.print(table)


def cmd_quiz(tracker: Tracker):
    pending = tracker.topics("today") or tracker.topics("pending")
    print_topics(tracker, pending, "Suggested Topics")
    topic_id = Prompt.ask("Topic ID").strip()
    try:
        session = tracker.start_quiz(topic_id)
    except InsufficientQuestionsError as e:
        console.print(f"[yellow]Quiz unavailable: {e}.[/yellow]")
        if tracker.settings.allow_manual_toggle:
            console.print("[dim]Use 'toggle' to mark it done manually.[/dim]")
        return
    try:
        run_quiz_session(tracker, session)
    except SessionExitRequested:
        tracker.abandon_quiz(session)
        console.print("[dim]Quiz abandoned. Nothing was recorded.[/dim]")


def cmd_review(tracker: Tracker):
    topic_id = Prompt.ask("Topic ID").strip()
    tracker.curriculum.entry(topic_id)
    attempt = tracker.progress.last_attempt(topic_id)
    if attempt is None:
        console.print(f"[dim]No quiz taken for {topic_id} yet.[/dim]")
    elif not attempt.incorrect_answers:
        console.print(f"[green]Last attempt on {topic_id}: {attempt.score}/{QUIZ_LENGTH}, "
                      "no mistakes.[/green]")
    else:
        console.print(review_table(attempt))


def cmd_toggle(tracker: Tracker):
    topic_id = Prompt.ask("Topic ID").strip()
    done = tracker.toggle_topic(topic_id)
    console.print(f"[green]{topic_id} marked {'done' if done else 'not done'}.[/green]")


def cmd_plan(tracker: Tracker):
    cells = tracker.schedule_grid()
    row = []
    for cell in cells:
        style = GRID_STYLES[cell["status"]]
        row.append(f"[{style}]{cell['day']:>3}[/{style}]")
        if len(row) == 10:
            console.print(" ".join(row))
            row = []
    if row:
        console.print(" ".join(row))
    console.print("\n[green]done[/green]  [yellow]partial[/yellow]  [dim]buffer[/dim]  "
                  "[bold reverse cyan]today[/bold reverse cyan]")
    day = Prompt.ask("Show a day (blank to skip)", default="").strip()
    if day.isdigit():
        print_topics(tracker, tracker.curriculum.topics_for_day(int(day)), f"Day {day}")


def cmd_dashboard(tracker: Tracker):
    stats = tracker.overall_stats()
    streak = tracker.streak()
    pace = tracker.pace_estimate() or "Start to see estimate"
    console.print(Panel(
        f"[bold]Day {tracker.current_day}[/bold] of {tracker.user.total_days}  |  "
        f"{tracker.days_left} days left  |  Sync: {STATUS_LABELS[tracker.sync.status]}",
        title="Dashboard", border_style="blue",
    ))
    bar_filled = stats.percentage // 5
    bar = f"[green]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/green]"
    console.print(f"\n  Overall: [bold]{stats.percentage}%[/bold] {bar} "
                  f"{stats.completed}/{stats.total} topics")
    console.print(f"  Streak: [bold]{streak}[/bold]{'🔥' if streak else ''}  |  {pace}\n")

    analytics = tracker.progress.analytics
    accuracy = difficulty_accuracy(analytics)
    table = Table(title=f"Quizzes taken: {analytics.quizzes_taken}, "
                        f"questions answered: {analytics.questions_answered}")
    table.add_column("Difficulty")
    table.add_column("Accuracy", justify="right")
    for difficulty, pct in accuracy.items():
        table.add_row(difficulty, "—" if pct is None else f"{pct}%")
    console.print(table)


def cmd_sync(tracker: Tracker):
    sync = tracker.sync
    console.print(f"Status: {STATUS_LABELS[sync.status]}  "
                  f"Handle: [cyan]{sync.config.remote_handle or '-'}[/cyan]")
    action = Prompt.ask("Action", choices=["now", "create", "connect", "disconnect", "back"], default="back")
    if action == "now":
        if not sync.enabled:
            console.print("[yellow]Set up cloud sync first.[/yellow]")
        elif sync.sync_now():
            console.print("[green]Synced.[/green]")
        else:
            console.print("[red]Sync failed; progress is kept locally.[/red]")
    elif action == "create":
        handle = sync.create_remote()
        if handle:
            console.print(f"[green]Sync enabled! Your ID:[/green] [bold]{handle}[/bold]\n"
                          "[dim]Use this ID on other devices to sync.[/dim]")
        else:
            console.print("[red]Could not create a remote document.[/red]")
    elif action == "connect":
        handle = Prompt.ask("Remote ID").strip()
        if handle:
            adopted = sync.connect_remote(handle)
            console.print(f"Connected. {'Remote progress adopted.' if adopted else 'Local progress kept.'} "
                          f"Status: {STATUS_LABELS[sync.status]}")
    elif action == "disconnect":
        sync.disconnect()
        console.print("[dim]Cloud sync disabled.[/dim]")


def cmd_export(tracker: Tracker):
    directory = Prompt.ask("Directory", default=".")
    path = tracker.export_progress(directory)
    console.print(f"[green]Exported to {path}[/green]")


def cmd_import(tracker: Tracker):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    count = tracker.import_progress(file_path)
    console.print(f"[green]Progress imported: {count} topics completed.[/green]")


def cmd_reset(tracker: Tracker):
    if Confirm.ask("Reset all progress? This cannot be undone.", default=False):
        tracker.reset_progress()
        console.print("[green]Progress reset.[/green]")


def cmd_user(tracker: Tracker) -> Tracker:
    for u in tracker.users:
        marker = " ←" if u.id == tracker.user.id else ""
        console.print(f"  [cyan]{u.id}[/cyan]) {u.icon} {u.display_name}{marker}")
    user_id = Prompt.ask("Select user", choices=[u.id for u in tracker.users], default=tracker.user.id)
    if user_id == tracker.user.id:
        return tracker
    new_tracker = tracker.switch_user(user_id)
    show_welcome(new_tracker)
    return new_tracker


def main():
    try:
        settings = load_settings()
        init_logging(settings.log_level, settings.log_format)
        tracker = Tracker.open(settings, on_topic_completed=celebrate)
    except TrackerError as e:
        console.print(Panel(f"[red]{e}[/red]", title="Cannot start", border_style="red"))
        raise SystemExit(1)

    show_welcome(tracker)
    cmd_topics(tracker, "today")

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        tracker.run_pending_sync()
        try:
            if choice in ("today", "week", "pending", "completed"):
                cmd_topics(tracker, choice)
            elif choice == "subjects":
                cmd_subjects(tracker)
            elif choice == "quiz":
                cmd_quiz(tracker)
            elif choice == "review":
                cmd_review(tracker)
            elif choice == "toggle":
                cmd_toggle(tracker)
            elif choice == "plan":
                cmd_plan(tracker)
            elif choice == "dashboard":
                cmd_dashboard(tracker)
            elif choice == "sync":
                cmd_sync(tracker)
            elif choice == "export":
                cmd_export(tracker)
            elif choice == "import":
                cmd_import(tracker)
            elif choice == "reset":
                cmd_reset(tracker)
            elif choice == "user":
                tracker = cmd_user(tracker)
            elif choice in ("quit", "exit", "q"):
                tracker.close()
                console.print("[dim]Keep the streak going![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except TrackerError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
