"""Console client for the chat relay."""
import asyncio
from typing import Any, Optional

from websockets.exceptions import WebSocketException

from ..shared.dto import ChatMessage, Identity
from ..shared.events import ServerEvent
from ..shared.utils import format_time, get_initials
from .api import RelayClient
from .config import DEFAULT_SERVER_URL
from .models import SessionState
from .session import ChatSession
from .storage import JsonFileStorage

LINE_BREAK_MARKER = "\\"
HELP = "Commands: /delete <id>, /avatar [value], /logout, /quit. End a line with \\ to continue it."


def render_message(message: ChatMessage, own_user_id: Optional[str] = None) -> str:
    author = "(you)" if own_user_id and message.user_id == own_user_id else message.username
    badge = "" if message.avatar else f"[{get_initials(message.username)}] "
    text = message.text.replace("\n", "\n    ")
    return f"[{format_time(message.timestamp)}] {badge}{author}: {text}  #{message.id}"


class ConsoleChat:
    """Prints relayed events and turns typed lines into session actions."""

    def __init__(self, session: ChatSession):
        self.session = session
        self.running = True
        session.subscribe(self.render)
        session.subscribe_state(self.on_state)

    def render(self, event: ServerEvent, data: Any) -> None:
        if event is ServerEvent.RECEIVE_MESSAGE:
            message = ChatMessage.from_payload(data)
            if message is not None:
                own = self.session.identity.user_id if self.session.identity else None
                print(render_message(message, own))
        elif event is ServerEvent.DELETE_MESSAGE:
            print(f"* message #{data} deleted")
        elif event in (ServerEvent.USER_JOINED, ServerEvent.USER_LEFT):
            identity = Identity.from_payload(data)
            verb = "joined" if event is ServerEvent.USER_JOINED else "left"
            if identity is not None:
                print(f"* {identity.username} {verb}")
        elif event in (ServerEvent.TYPING, ServerEvent.STOP_TYPING):
            typing = self.session.typing_users
            print(f"* {', '.join(typing)} typing..." if typing else "* nobody is typing")

    def on_state(self, state: SessionState) -> None:
        if state is SessionState.DISCONNECTED and self.running:
            print("Disconnected from relay.")

    async def handle_line(self, line: str) -> None:
        session = self.session
        if line.startswith("/"):
            command, _, arg = line.partition(" ")
            if command == "/quit":
                self.running = False
                await session.disconnect()
            elif command == "/logout":
                self.running = False
                await session.logout()
                print("Logged out.")
            elif command == "/delete":
                if not arg.strip():
                    print("Usage: /delete <id>")
                elif not await session.delete_message(arg.strip()):
                    print("You can only delete your own messages.")
            elif command == "/avatar":
                await session.update_avatar(arg.strip() or None)
            else:
                print(HELP)
            return

        continued = line.endswith(LINE_BREAK_MARKER)
        text = line[: -len(LINE_BREAK_MARKER)] if continued else line
        await session.keystroke(session.draft + text)
        await session.press_enter(line_break=continued)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        print(HELP)
        while self.running and self.session.connected:
            line = await loop.run_in_executor(None, input, "")
            await self.handle_line(line)


async def run_client(server_url: str) -> None:
    session = ChatSession(JsonFileStorage(), lambda: RelayClient(server_url))
    while session.identity is None:
        name = input("Your name: ")
        avatar = input("Avatar (optional, image URL or data URL): ").strip() or None
        if session.login(name, avatar) is None:
            print("Name cannot be empty.")
    print(f"Welcome, {session.identity.username}!")
    try:
        await session.connect()
    except (OSError, WebSocketException) as exc:
        print(f"Could not connect to {server_url}: {exc}")
        return
    for message in session.chat:
        print(render_message(message, session.identity.user_id))
    await ConsoleChat(session).run()


def main():
    print("Chat Relay Client")
    server_url = input(f"Server URL [{DEFAULT_SERVER_URL}]: ").strip() or DEFAULT_SERVER_URL
    try:
        asyncio.run(run_client(server_url))
    except (KeyboardInterrupt, EOFError):
        print()


if __name__ == "__main__":
    main()
