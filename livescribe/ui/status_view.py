"""Terminal status view of a live session."""

from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.session import Session

MAX_VISIBLE_CHUNKS = 8


def _header(session: Session, settings) -> Panel:
    title = Text("🎙️  LiveScribe - Live Transcription", style="bold blue")
    if session.is_recording:
        status = ("🔴 RECORDING " + session.elapsed_label, "bold red")
    else:
        status = ("⏹️  IDLE", "bold yellow")

    header_text = Text.assemble(
        title, "  |  ", status, "  |  ",
        f"Recorder: {settings.recorder_preference}  Segment: {settings.segment_seconds}s",
    )
    if session.pending_chunk_index is not None and session.is_recording:
        header_text.append("  Processing...", style="yellow")
    return Panel(header_text, style="bright_blue")


def _transcript_panel(session: Session) -> Panel:
    if not session.transcript:
        body = Text("Transcription appears here in real-time", style="dim white italic")
    else:
        body = Text()
        for chunk in session.transcript[-MAX_VISIBLE_CHUNKS:]:
            body.append(f"#{chunk.index + 1} · {chunk.elapsed_label}\n", style="bold bright_black")
            body.append(f"{chunk.text}\n\n")

    subtitle = f"{session.chunk_count} chunks · {session.word_count()} words"
    return Panel(body, title="📝 Transcript", subtitle=subtitle, border_style="blue")


def _topics_table(session: Session) -> Table:
    table = Table(title="Topics", show_header=True, header_style="bold magenta", expand=True)
    table.add_column("Topic", style="cyan")
    table.add_column("Confidence", style="white", justify="right")

    if not session.topics:
        table.add_row(Text("Topics appear after a few chunks", style="dim italic"), "")
    for topic in session.topics:
        table.add_row(topic.phrase, f"{round(topic.confidence * 100)}%")
    return table


def _summary_panel(session: Session) -> Panel:
    if session.is_summarizing:
        body = Text("Summarizing...", style="yellow italic")
    elif session.summary:
        body = Text(session.summary)
    else:
        body = Text("Summary appears after stopping (auto-summary) or on request", style="dim italic")
    return Panel(body, title="Summary", border_style="green")


def render_status(session: Session, settings) -> Layout:
    """Build a rich layout showing transcript, topics and summary.

    Args:
        session: Session to display
        settings: SessionSettings for recorder details

    Returns:
        Renderable layout for a rich Live display
    """
    layout = Layout()
    layout.split_column(
        Layout(name="header", size=3),
        Layout(name="main", ratio=1),
        Layout(name="footer", size=3),
    )
    layout["main"].split_row(
        Layout(name="transcript", ratio=2),
        Layout(name="side", ratio=1),
    )

    layout["header"].update(_header(session, settings))
    layout["transcript"].update(_transcript_panel(session))
    layout["side"].update(Group(_topics_table(session), _summary_panel(session)))

    if session.error:
        footer = Text(session.error, style="bold red")
    else:
        footer = Text.assemble(("Ctrl+C", "bold red"), " Stop recording")
    layout["footer"].update(Panel(footer, style="bright_black"))
    return layout
