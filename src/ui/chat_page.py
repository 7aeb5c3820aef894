"""NiceGUI chat interface with live reply streaming and a thread sidebar."""

import logging
import re
from collections.abc import Callable

from nicegui import ui

from src.chat.service import ChatService
from src.errors import ChatError
from src.models.schemas import Message, Role, SessionSnapshot, ThreadGroup

logger = logging.getLogger(__name__)

# Plain Enter sends; Shift+Enter inserts a newline.
SEND_KEY_EVENT = "keydown.enter.exact.prevent"

_LIST_PATTERNS = (
    (r"^[-*]\s+", '<ul class="list-disc list-inside my-2 space-y-1">', "</ul>"),
    (r"^\d+\.\s+", '<ol class="list-decimal list-inside my-2 space-y-1">', "</ol>"),
)


def _wrap_lists(text: str, marker: str, open_tag: str, close_tag: str) -> str:
    result: list[str] = []
    in_list = False
    for line in text.split("\n"):
        stripped = line.strip()
        if re.match(marker, stripped):
            if not in_list:
                result.append(open_tag)
                in_list = True
            result.append(f"<li>{re.sub(marker, '', stripped)}</li>")
            continue
        if in_list:
            result.append(close_tag)
            in_list = False
        result.append(line)
    if in_list:
        result.append(close_tag)
    return "\n".join(result)


def escape_html(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def markdown_to_html(text: str) -> str:
    """Convert markdown to HTML for chat display.

    Supports: bold, italic, inline code, code blocks, links, lists.
    Only http and https URLs become links.
    """
    text = escape_html(text)
    text = re.sub(
        r"```(\w*)\n?([\s\S]*?)```",
        r'<pre class="bg-gray-800 text-gray-100 rounded-lg p-3 my-2 overflow-x-auto text-xs">'
        r"<code>\2</code></pre>",
        text,
    )
    text = re.sub(
        r"`([^`]+)`",
        r'<code class="bg-gray-200 text-pink-600 px-1.5 py-0.5 rounded text-xs">\1</code>',
        text,
    )
    text = re.sub(r"\*\*(.+?)\*\*|__(.+?)__", lambda m: f"<strong>{m[1] or m[2]}</strong>", text)
    text = re.sub(r"\*([^*]+)\*|_([^_]+)_", lambda m: f"<em>{m[1] or m[2]}</em>", text)
    text = re.sub(
        r"\[([^\]]+)\]\((https?://[^)\s]+)\)",
        r'<a href="\2" class="text-blue-600 underline" target="_blank" rel="noopener">\1</a>',
        text,
    )
    for marker, open_tag, close_tag in _LIST_PATTERNS:
        text = _wrap_lists(text, marker, open_tag, close_tag)
    return text.replace("\n", "<br>")


CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }
    .message-user {
        background: linear-gradient(135deg, #4f8ef7 0%, #3b5bdb 100%);
        color: white;
        border-radius: 18px 18px 4px 18px;
    }
    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }
    .body--dark .message-assistant { background: #2d2f36; color: #e5e7eb; }
    .message-error {
        background: #fef2f2;
        color: #b91c1c;
        border: 1px solid #fecaca;
        border-radius: 18px 18px 18px 4px;
    }
    .typing-dot {
        width: 8px; height: 8px;
        background: #4f8ef7;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }
    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }
    .thread-item:hover .thread-delete { opacity: 1; }
    .thread-delete { opacity: 0; transition: opacity 0.2s; }
</style>
"""


def _bubble_classes(message: Message) -> str:
    if message.role is Role.USER:
        return "message-user"
    return "message-error" if message.is_error else "message-assistant"


def _message_html(message: Message) -> str:
    if message.role is Role.USER:
        return escape_html(message.content).replace("\n", "<br>")
    return markdown_to_html(message.content)


def register_chat_page(service: ChatService) -> None:
    """Register the chat pages bound to one conversation service."""

    @ui.page("/")
    def chat_index() -> None:
        if service.session.current_thread_id is not None and not service.controller.busy:
            service.new_chat()
        _chat_page(service)

    @ui.page("/chat/{thread_id}")
    def chat_thread(thread_id: str) -> None:
        try:
            service.select_thread(thread_id)
        except ChatError as e:
            ui.notify(str(e), type="warning")
        _chat_page(service)


def _chat_page(service: ChatService) -> None:
    """Build the page for the current session state."""
    ui.add_head_html(CUSTOM_CSS)
    dark = ui.dark_mode()
    search = {"query": ""}
    rendered: dict[str, ui.html] = {}

    messages_container: ui.column
    status_row: ui.row | None = None
    input_field: ui.textarea
    send_btn: ui.button
    stop_btn: ui.button

    def go_to_thread(thread_id: str) -> None:
        if service.controller.busy and thread_id != service.session.current_thread_id:
            ui.notify("Wait for the reply to finish or stop it first", type="warning")
            return
        ui.navigate.to(f"/chat/{thread_id}")

    def delete_thread(thread_id: str) -> None:
        try:
            service.delete_thread(thread_id)
        except ChatError as e:
            ui.notify(str(e), type="negative")
            return
        if service.session.current_thread_id is None:
            ui.navigate.to("/")

    @ui.refreshable
    def thread_list() -> None:
        groups: list[ThreadGroup] = service.thread_groups(search["query"])
        if not groups:
            ui.label("No conversations yet").classes("text-sm text-gray-400 px-3")
        for group in groups:
            ui.label(group.label).classes("px-3 pt-3 text-xs font-semibold text-gray-500")
            for thread in group.threads:
                active = thread.id == service.session.current_thread_id
                with ui.row().classes(
                    "thread-item w-full items-center no-wrap px-3 py-2 rounded-md cursor-pointer "
                    + ("bg-blue-100" if active else "hover:bg-gray-100")
                ).on("click", lambda _, tid=thread.id: go_to_thread(tid)):
                    ui.label(thread.title).classes("text-sm truncate flex-grow")
                    ui.button(icon="delete").props("flat dense round size=sm").classes(
                        "thread-delete"
                    ).on("click.stop", lambda _, tid=thread.id: delete_thread(tid))

    def render_avatar(is_user: bool) -> None:
        icon = "person" if is_user else "smart_toy"
        color = "bg-blue-600" if is_user else "bg-gray-500"
        with ui.element("div").classes(
            f"w-9 h-9 rounded-full flex items-center justify-center {color}"
        ):
            ui.icon(icon).classes("text-white text-lg")

    def render_message(message: Message) -> None:
        is_user = message.role is Role.USER
        align = "justify-end" if is_user else "justify-start"
        with ui.row().classes(f"w-full {align} gap-3 items-end"):
            if not is_user:
                render_avatar(False)
            with ui.column().classes("max-w-[70%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {_bubble_classes(message)}"):
                    rendered[message.id] = ui.html(
                        _message_html(message), sanitize=False
                    ).classes("text-sm leading-relaxed")
                ui.label(message.timestamp.astimezone().strftime("%I:%M %p")).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )
            if is_user:
                render_avatar(True)

    def render_typing() -> ui.row:
        with ui.row().classes("w-full justify-start gap-3 items-end") as row:
            render_avatar(False)
            with ui.element("div").classes("message-assistant px-4 py-3"):
                with ui.row().classes("items-center gap-2"):
                    with ui.row().classes("gap-1"):
                        for _ in range(3):
                            ui.element("div").classes("typing-dot")
                    ui.label("Thinking...").classes("text-sm text-gray-500 italic")
        return row

    def refresh_messages(snapshot: SessionSnapshot) -> None:
        nonlocal status_row
        messages_container.clear()
        rendered.clear()
        status_row = None
        with messages_container:
            if not snapshot.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("forum").classes("text-5xl text-gray-300")
                    ui.label("Start a conversation").classes("text-lg text-gray-400")
                return
            for message in snapshot.messages:
                render_message(message)
            if snapshot.is_loading:
                status_row = render_typing()

    def update_controls(snapshot: SessionSnapshot) -> None:
        send_btn.set_visibility(not snapshot.is_streaming)
        stop_btn.set_visibility(snapshot.is_streaming)

    def on_snapshot(snapshot: SessionSnapshot) -> None:
        last = snapshot.messages[-1] if snapshot.messages else None
        streaming_update = (
            last is not None
            and last.id in rendered
            and len(rendered) == len(snapshot.messages)
            and status_row is None
        )
        if streaming_update:
            rendered[last.id].set_content(_message_html(last))
        else:
            refresh_messages(snapshot)
        update_controls(snapshot)

    async def send_message() -> None:
        text = (input_field.value or "").strip()
        if not text or service.controller.busy:
            return
        input_field.value = ""
        try:
            await service.send(text)
        except ChatError as e:
            logger.warning(f"Send failed: {e}")
            ui.notify(f"Conversation not saved: {e}", type="negative")

    def on_search(event) -> None:
        search["query"] = event.value or ""
        thread_list.refresh()

    # === UI Layout ===
    with ui.left_drawer(value=True).classes("bg-gray-50 p-0") as drawer:
        with ui.column().classes("w-full p-3 gap-3"):
            with ui.row().classes("w-full items-center justify-between"):
                ui.link("Chat", "/").classes("text-lg font-semibold no-underline px-2")
                ui.button(icon="dark_mode", on_click=dark.toggle).props("flat round dense")
            ui.input(placeholder="Search your threads...", on_change=on_search).props(
                "dense outlined clearable"
            ).classes("w-full")
        with ui.scroll_area().classes("flex-grow w-full"):
            thread_list()
        with ui.row().classes("w-full p-3 border-t"):
            ui.button("New Chat", icon="add", on_click=lambda: ui.navigate.to("/")).props(
                "outline"
            ).classes("w-full")

    with ui.column().classes("w-full max-w-3xl mx-auto").style("height: calc(100vh - 2rem)"):
        with ui.row().classes("w-full items-center"):
            ui.button(icon="menu", on_click=drawer.toggle).props("flat round")

        with ui.scroll_area().classes("flex-grow w-full"):
            messages_container = ui.column().classes("w-full gap-4 p-5")

        with ui.row().classes("w-full p-4 gap-3 items-end border-t"):
            input_field = (
                ui.textarea(placeholder="Type a message...")
                .props("autogrow outlined dense rows=1")
                .classes("flex-grow")
                .on(SEND_KEY_EVENT, send_message)
            )
            send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")
            stop_btn = ui.button(icon="stop", on_click=service.stop).props(
                "round unelevated color=negative"
            )

    snapshot = service.snapshot()
    refresh_messages(snapshot)
    update_controls(snapshot)

    client = ui.context.client

    def show_thread_url(thread_id: str) -> None:
        client.run_javascript(f"history.replaceState(null, '', '/chat/{thread_id}')")

    unsubscribers: list[Callable[[], None]] = [
        service.subscribe(on_snapshot),
        service.subscribe_threads(lambda _groups: thread_list.refresh()),
        service.subscribe_created(show_thread_url),
    ]

    def cleanup() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    client.on_disconnect(cleanup)
