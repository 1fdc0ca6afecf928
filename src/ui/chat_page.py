"""NiceGUI chat interface for the FIP diagnostic assistant."""

import html
import os
import re
from datetime import datetime

from nicegui import events, ui

from src.client import ConversationManager
from src.models import ChatMessage
from src.parsing import AttachmentError
from src.relay.config import CredentialMode, get_relay_config

_LIST_PATTERNS = (
    (r"^[-*]\s+", "ul", "list-disc list-inside my-2 space-y-1"),
    (r"^\d+\.\s+", "ol", "list-decimal list-inside my-2 space-y-1"),
)


def _wrap_lists(text: str, pattern: str, tag: str, classes: str) -> str:
    """Wrap consecutive list lines matching pattern in a list element."""
    in_list = False
    result = []
    for line in text.split("\n"):
        stripped = line.strip()
        if re.match(pattern, stripped):
            if not in_list:
                result.append(f'<{tag} class="{classes}">')
                in_list = True
            result.append(f"<li>{re.sub(pattern, '', stripped)}</li>")
            continue
        if in_list:
            result.append(f"</{tag}>")
            in_list = False
        result.append(line)
    if in_list:
        result.append(f"</{tag}>")
    return "\n".join(result)


def markdown_to_html(text: str) -> str:
    """Convert markdown to HTML for chat display.

    Supports: headings, bold, italic, inline code, code blocks, links, lists.
    """
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    text = re.sub(
        r"```(\w*)\n?([\s\S]*?)```",
        r'<pre class="bg-gray-800 text-gray-100 rounded-lg p-3 my-2 overflow-x-auto text-xs"><code>\2</code></pre>',
        text,
    )
    text = re.sub(
        r"`([^`]+)`",
        r'<code class="bg-gray-200 text-teal-700 px-1.5 py-0.5 rounded text-xs">\1</code>',
        text,
    )

    # Headings (#, ##, ###) render as bold lines of decreasing size
    text = re.sub(r"(?m)^###\s+(.+)$", r'<div class="font-semibold mt-2">\1</div>', text)
    text = re.sub(r"(?m)^##\s+(.+)$", r'<div class="font-semibold text-base mt-3">\1</div>', text)
    text = re.sub(r"(?m)^#\s+(.+)$", r'<div class="font-bold text-lg mt-3">\1</div>', text)

    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"__(.+?)__", r"<strong>\1</strong>", text)
    text = re.sub(r"(?<!\*)\*([^*\n]+)\*", r"<em>\1</em>", text)

    text = re.sub(
        r"\[([^\]]+)\]\(([^)]+)\)",
        r'<a href="\2" class="text-teal-700 underline" target="_blank">\1</a>',
        text,
    )

    for pattern, tag, classes in _LIST_PATTERNS:
        text = _wrap_lists(text, pattern, tag, classes)

    return text.replace("\n", "<br>")


CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }
    body { background: #f1f5f4; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }
    .header { background: linear-gradient(135deg, #0f766e 0%, #115e59 100%); }

    .message-user {
        background: #0f766e;
        color: white;
        border-radius: 18px 18px 4px 18px;
    }
    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }
    .message-error {
        background: #fef2f2;
        color: #991b1b;
        border-radius: 18px 18px 18px 4px;
    }

    .typing-dot {
        width: 8px; height: 8px;
        background: #0f766e;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }
    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .input-box {
        background: #f9fafb;
        border: 1px solid #e5e7eb;
        border-radius: 12px;
    }
    .input-box:focus-within { border-color: #0f766e; }
</style>
"""

WELCOME_TEXT = (
    "Describe the cat's signalment, history and clinical signs, or upload "
    "bloodwork, effusion analysis, imaging reports and photos."
)


def _message_text(message: ChatMessage) -> str:
    """Text shown for a message, with a note on attached files."""
    text = message.text()
    if isinstance(message.content, list):
        files = len(message.content) - sum(1 for part in message.content if part.type == "text")
        if files:
            text = f"{text}\n\n📎 {files} attachment{'s' if files != 1 else ''}"
    return text


@ui.page("/")
def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    client_credentials = get_relay_config().credential_mode is CredentialMode.CLIENT
    conversation = ConversationManager(
        rasterize_pages=os.getenv("RASTERIZE_PDF_PAGES", "0").lower() in {"1", "true", "yes"},
    )
    times: list[str] = []

    messages_container: ui.column
    attachments_row: ui.row
    input_field: ui.textarea
    send_btn: ui.button
    api_key_field: ui.input | None = None

    def render_bubble(content: str, css: str, time: str, is_user: bool) -> None:
        align = "justify-end" if is_user else "justify-start"
        with ui.row().classes(f"w-full {align}"):
            with ui.column().classes("max-w-[75%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {css}"):
                    ui.html(content, sanitize=False).classes("text-sm leading-relaxed")
                ui.label(time).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            if not conversation.transcript:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("pets").classes("text-5xl text-gray-300")
                    ui.label(WELCOME_TEXT).classes("text-sm text-gray-400 text-center max-w-md")
            for message, time in zip(conversation.transcript, times, strict=False):
                if message.role == "user":
                    text = html.escape(_message_text(message)).replace("\n", "<br>")
                    render_bubble(text, "message-user", time, is_user=True)
                else:
                    render_bubble(markdown_to_html(message.text()), "message-assistant", time, is_user=False)
            if conversation.last_error:
                error_time = times[-1] if times else ""
                render_bubble(
                    html.escape(conversation.last_error), "message-error", error_time, is_user=False
                )

    def refresh_attachments() -> None:
        attachments_row.clear()
        with attachments_row:
            for attachment in conversation.pending:
                icon = "image" if attachment.kind.value == "image" else "description"
                with ui.row().classes("items-center gap-1 bg-gray-100 rounded-full px-3 py-1"):
                    ui.icon(icon).classes("text-gray-500 text-sm")
                    ui.label(f"{attachment.name} · {attachment.size_label}").classes("text-xs")
                    ui.button(
                        icon="close",
                        on_click=lambda _, name=attachment.name: remove_attachment(name),
                    ).props("flat round dense size=xs")

    def remove_attachment(name: str) -> None:
        conversation.remove_attachment(name)
        refresh_attachments()

    async def handle_upload(e: events.UploadEventArguments) -> None:
        content = await e.file.read()
        try:
            await conversation.add_files([(e.file.name, content, e.file.content_type)])
        except AttachmentError as error:
            ui.notify(str(error), type="negative")
            return
        refresh_attachments()

    def render_status_indicator() -> ui.row:
        with ui.row().classes("w-full justify-start") as row:
            with ui.element("div").classes("message-assistant px-4 py-3"):
                with ui.row().classes("items-center gap-2"):
                    with ui.row().classes("gap-1"):
                        for _ in range(3):
                            ui.element("div").classes("typing-dot")
                    ui.label("Analyzing case...").classes("text-sm text-gray-500 italic")
        return row

    async def send_message() -> None:
        text = input_field.value.strip()
        if conversation.is_sending or (not text and not conversation.pending):
            return
        if api_key_field is not None:
            conversation.api_key = api_key_field.value.strip() or None

        input_field.value = ""
        send_btn.disable()
        now = datetime.now().strftime("%I:%M %p")
        times.append(now)

        with messages_container:
            status_row = render_status_indicator()

        try:
            result = await conversation.send(text)
        except Exception as error:
            ui.notify(f"Unexpected error: {error}", type="negative")
        else:
            if result.ok:
                times.append(datetime.now().strftime("%I:%M %p"))
            else:
                ui.notify(result.error, type="negative")
        finally:
            status_row.delete()
            send_btn.enable()
            refresh_attachments()
            refresh_messages()

    def new_consultation() -> None:
        if conversation.is_sending:
            return
        conversation.clear()
        times.clear()
        refresh_attachments()
        refresh_messages()

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("pets").classes("text-white text-3xl")
                with ui.column().classes("gap-0"):
                    ui.label("FIP Diagnostic Assistant").classes("text-lg font-semibold text-white")
                    ui.label("Decision support only, confirm with a veterinarian").classes(
                        "text-xs text-white/70"
                    )
            ui.button(icon="add", on_click=new_consultation).props("flat round color=white")

        if client_credentials:
            with ui.row().classes("w-full px-5 pt-3"):
                api_key_field = (
                    ui.input("OpenAI API key", password=True, password_toggle_button=True)
                    .props("dense outlined")
                    .classes("w-full")
                )

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        # Attachments + input
        with ui.column().classes("w-full p-4 gap-2 bg-white border-t"):
            attachments_row = ui.row().classes("w-full gap-2 flex-wrap")
            with ui.row().classes("w-full gap-3 items-end"):
                ui.upload(
                    on_upload=handle_upload,
                    multiple=True,
                    auto_upload=True,
                ).props('accept="image/*,.pdf" flat dense hide-upload-btn').classes("w-48")
                with ui.element("div").classes("flex-grow input-box px-3 py-2"):
                    input_field = (
                        ui.textarea(placeholder="Describe the case...")
                        .props("autogrow borderless dense rows=1")
                        .classes("w-full")
                        .on("keydown.enter.prevent", send_message)
                    )
                send_btn = (
                    ui.button(icon="send", on_click=send_message)
                    .props("round unelevated color=teal-8")
                )


def main() -> None:
    ui.run(title="FIP Diagnostic Assistant", port=8080, reload=False)


if __name__ == "__main__":
    main()
