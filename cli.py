import typer
from rich.console import Console
from rich.table import Table
from typing import Optional
from datetime import datetime

from spaced_review.database import SessionLocal, init_db
from spaced_review.crud import (
    create_user, require_user,
    create_subject, get_subjects,
    create_topic, get_topics_by_subject,
    get_due_topics, reconcile_all
)
from spaced_review.errors import DomainError
from spaced_review.handlers import (
    handle_complete_topic, handle_review_topic,
    handle_get_rewards, handle_list_notifications, handle_mark_notification_read
)
from spaced_review.interval_policy import Difficulty, IntervalPolicy, utcnow
from spaced_review.logging_config import setup_logging
from spaced_review.review_notifier import ReviewNotifier, run_manual_scan
from spaced_review.schemas import ErrorResponse, UserCreate, SubjectCreate, TopicCreate

app = typer.Typer(help="Spaced Review CLI - spaced repetition scheduling and review reminders")
console = Console()

@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Logging level (default from settings)")):
    """Configure logging for every command"""
    setup_logging(log_level)

def _fail(error) -> None:
    """Print a structured failure and exit non-zero"""
    console.print(f"[red]✗[/red] {error.kind}: {error.message}")
    raise typer.Exit(code=1)

def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"

@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")

@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from spaced_review.database import reset_db as drop_and_create
    console.print("[yellow]Dropping and recreating all tables...[/yellow]")
    drop_and_create()
    console.print("[green]✓[/green] Database reset complete! All data deleted.")

@app.command("create-user")
def create_user_cmd(
    name: str = typer.Option(..., prompt="Name"),
    email: Optional[str] = typer.Option(None, help="Email address")
):
    """Create a learner account"""
    db = SessionLocal()
    try:
        user = create_user(db, UserCreate(name=name, email=email))
        console.print(f"[green]✓[/green] User created! User ID: {user.id}")
    except DomainError as e:
        _fail(e)
    finally:
        db.close()

@app.command("create-subject")
def create_subject_cmd(
    user_id: int = typer.Option(..., prompt="User ID"),
    title: str = typer.Option(..., prompt="Subject title"),
    difficulty: Difficulty = typer.Option(Difficulty.MEDIUM, help="easy, medium or hard"),
    daily_hours: float = typer.Option(1.0, help="Planned study hours per day")
):
    """Create a subject for a user"""
    db = SessionLocal()
    try:
        require_user(db, user_id)
        subject = create_subject(db, user_id, SubjectCreate(title=title, difficulty=difficulty, daily_hours=daily_hours))
        console.print(f"[green]✓[/green] Subject created! Subject ID: {subject.id}")
    except DomainError as e:
        _fail(e)
    finally:
        db.close()

@app.command("create-topic")
def create_topic_cmd(
    user_id: int = typer.Option(..., prompt="User ID"),
    subject_id: int = typer.Option(..., prompt="Subject ID"),
    title: str = typer.Option(..., prompt="Topic title"),
    difficulty: Difficulty = typer.Option(Difficulty.MEDIUM, help="easy, medium or hard"),
    notes: str = typer.Option("", help="Optional notes")
):
    """Add a topic to a subject"""
    db = SessionLocal()
    try:
        topic = create_topic(db, user_id, TopicCreate(subject_id=subject_id, title=title, difficulty=difficulty, notes=notes))
        console.print(f"[green]✓[/green] Topic created! Topic ID: {topic.id}")
    except DomainError as e:
        _fail(e)
    finally:
        db.close()

@app.command("list-topics")
def list_topics(user_id: int, subject_id: Optional[int] = typer.Option(None, help="Only this subject")):
    """List topics with their review schedule"""
    db = SessionLocal()
    try:
        subject_ids = [subject_id] if subject_id else [s.id for s in get_subjects(db, user_id)]

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Topic", style="green")
        table.add_column("Difficulty")
        table.add_column("State", style="yellow")
        table.add_column("Interval", justify="right")
        table.add_column("Next Review", style="blue")

        for sid in subject_ids:
            for topic in get_topics_by_subject(db, sid, user_id):
                table.add_row(
                    str(topic.id),
                    topic.title[:50],
                    topic.difficulty_label,
                    topic.state.value,
                    f"{topic.interval_days} d",
                    _fmt(topic.next_review)
                )

        console.print(table)
    except DomainError as e:
        _fail(e)
    finally:
        db.close()

@app.command("complete-topic")
def complete_topic_cmd(topic_id: int, user_id: int = typer.Option(..., prompt="User ID")):
    """Mark a topic complete and schedule its first review"""
    db = SessionLocal()
    try:
        result = handle_complete_topic(db, topic_id, user_id)
        if isinstance(result, ErrorResponse):
            _fail(result)
        console.print(f"[green]✓[/green] Completed: {result.topic.title}")
        console.print(f"  Points earned: {result.points_earned} (total {result.new_total_points})")
        console.print(f"  First review: {_fmt(result.topic.next_review)}")
    finally:
        db.close()

@app.command("review-topic")
def review_topic_cmd(topic_id: int, user_id: int = typer.Option(..., prompt="User ID")):
    """Record a review of a topic"""
    db = SessionLocal()
    try:
        result = handle_review_topic(db, topic_id, user_id)
        if isinstance(result, ErrorResponse):
            _fail(result)
        console.print(f"[green]✓[/green] Reviewed: {result.topic.title}")
        console.print(f"  Points earned: {result.review_points_earned} (total {result.new_total_points})")
        console.print(f"  Next review: {_fmt(result.topic.next_review)} (in {result.topic.interval_days} days)")
    finally:
        db.close()

@app.command("due-topics")
def due_topics(user_id: int):
    """Show topics due for review"""
    db = SessionLocal()
    try:
        now = utcnow()
        topics = get_due_topics(db, user_id, now)
        if not topics:
            console.print("[green]No topics currently due for review.[/green]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Topic", style="green")
        table.add_column("Due Date", style="yellow")
        table.add_column("Days Overdue", style="red")

        for topic in topics[:20]:
            days_overdue = IntervalPolicy.days_overdue(topic.next_review, now)
            table.add_row(
                str(topic.id),
                topic.title[:50],
                _fmt(topic.next_review),
                str(days_overdue) if days_overdue > 0 else "Today"
            )

        console.print(table)
        if len(topics) > 20:
            console.print(f"[dim]... and {len(topics) - 20} more topics[/dim]")
    except DomainError as e:
        _fail(e)
    finally:
        db.close()

@app.command()
def rewards(user_id: int, limit: int = typer.Option(10, help="Recent events to show")):
    """Show points and recent reward history"""
    db = SessionLocal()
    try:
        summary = handle_get_rewards(db, user_id, limit)
        if isinstance(summary, ErrorResponse):
            _fail(summary)

        console.print(f"\n[bold]Points: {summary.current_points}[/bold]")
        console.print(f"  Topics completed: {summary.stats.topics_completed}")
        console.print(f"  Reviews: {summary.stats.topics_reviewed}")
        if summary.total_points_earned != summary.current_points:
            console.print(f"[red]  Ledger sum {summary.total_points_earned} does not match total![/red]")

        if summary.recent_rewards:
            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("When", style="cyan")
            table.add_column("Action", style="yellow")
            table.add_column("Points", justify="right", style="green")
            table.add_column("Description")
            for event in summary.recent_rewards:
                table.add_row(_fmt(event.timestamp), event.action.value, f"+{event.points}", event.description)
            console.print(table)
    finally:
        db.close()

@app.command()
def notifications(user_id: int):
    """List a user's notifications"""
    db = SessionLocal()
    try:
        listing = handle_list_notifications(db, user_id)
        if isinstance(listing, ErrorResponse):
            _fail(listing)

        console.print(f"\n[bold]{listing.count} notifications ({listing.unread_count} unread)[/bold]")
        for n in listing.notifications:
            marker = "[dim]read[/dim]" if n.read else "[yellow]new[/yellow]"
            console.print(f"  #{n.id} {marker} {_fmt(n.created_at)} {n.title}")
            console.print(f"      {n.message}")
    finally:
        db.close()

@app.command("mark-read")
def mark_read(notification_id: int, user_id: int = typer.Option(..., prompt="User ID")):
    """Mark a notification as read"""
    db = SessionLocal()
    try:
        result = handle_mark_notification_read(db, notification_id, user_id)
        if isinstance(result, ErrorResponse):
            _fail(result)
        console.print(f"[green]✓[/green] {result.message}")
    finally:
        db.close()

@app.command()
def scan():
    """Run the due-review scan once"""
    summary = run_manual_scan()
    if not summary.completed:
        console.print("[red]✗[/red] Scan ended early; see logs")
        raise typer.Exit(code=1)
    console.print(
        f"[green]✓[/green] {summary.due_topics} due topics, "
        f"{summary.created} notifications created, "
        f"{summary.skipped_existing} already pending"
    )

@app.command("run-notifier")
def run_notifier(
    interval: Optional[int] = typer.Option(None, help="Seconds between scans (default from settings)"),
    delay: Optional[int] = typer.Option(None, help="Seconds before the first scan")
):
    """Run the review notifier in the foreground until interrupted"""
    notifier = ReviewNotifier(interval_seconds=interval, initial_delay_seconds=delay)
    notifier.start()
    console.print(f"[green]✓[/green] Review notifier running every {notifier.interval_seconds}s (Ctrl+C to stop)")
    try:
        while notifier.running:
            notifier.join(1.0)
    except KeyboardInterrupt:
        console.print("[yellow]Stopping...[/yellow]")
    finally:
        notifier.stop(timeout=5)

@app.command()
def reconcile():
    """Check every user's point total against their reward history"""
    db = SessionLocal()
    try:
        inconsistent = reconcile_all(db)
        if inconsistent:
            console.print(f"[red]✗[/red] Points out of sync for users: {', '.join(map(str, inconsistent))}")
            raise typer.Exit(code=1)
        console.print("[green]✓[/green] All point totals match their reward history")
    except DomainError as e:
        _fail(e)
    finally:
        db.close()

if __name__ == "__main__":
    app()
