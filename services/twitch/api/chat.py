import asyncio
from typing import AsyncGenerator, Iterable, List, Optional, Tuple

from services.twitch.models.message import IrcEvent, Tag
from shared.logging.logger import get_logger

log = get_logger("twitch.chat")

ANONYMOUS_NICKNAME = "justinfan12345"

_TAG_ESCAPES = {
    ":": ";",
    "s": " ",
    "\\": "\\",
    "r": "\r",
    "n": "\n",
}


class TwitchChatClient:
    """
    Minimal multi-channel Twitch IRC-over-TLS client.

    - No event loop creation on import.
    - Connection lifecycle is owned by the caller (core.app).
    - Every decoded line except PING is surfaced to the caller; routing
      decisions live in core.dispatcher.
    """

    HOST = "irc.chat.twitch.tv"
    PORT = 6697
    CAPABILITIES = ("twitch.tv/tags", "twitch.tv/commands")

    def __init__(
        self,
        channels: Iterable[str],
        *,
        nickname: str = ANONYMOUS_NICKNAME,
        token: Optional[str] = None,
    ):
        self.channels: List[str] = [self._normalize_channel(c) for c in channels]
        self.nickname = nickname
        self.token = self._normalize_token(token) if token else None

        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None

        self._connected = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        """
        Establish the TLS connection, negotiate capabilities, identify and
        join the startup channels.
        """
        if self._connected:
            log.debug("TwitchChatClient already connected")
            return

        log.info(
            f"Connecting to Twitch IRC ({self.HOST}:{self.PORT}) "
            f"as nick={self.nickname}"
        )
        self.reader, self.writer = await asyncio.open_connection(
            self.HOST, self.PORT, ssl=True
        )
        await self.handshake()

    async def handshake(self) -> None:
        await self._send_raw(f"CAP REQ :{' '.join(self.CAPABILITIES)}")
        if self.token:
            await self._send_raw(f"PASS {self.token}")
        await self._send_raw(f"NICK {self.nickname}")

        if self.channels:
            await self.send_join(",".join(self.channels))
        self._connected = True

    async def close(self) -> None:
        if not self.writer:
            return

        log.info("Closing Twitch IRC connection")
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except Exception as e:
            log.debug(f"Error during Twitch IRC close ignored: {e}")
        finally:
            self.reader = None
            self.writer = None
            self._connected = False

    # ------------------------------------------------------------------ #
    # Directives
    # ------------------------------------------------------------------ #

    async def send_join(self, channels: str) -> None:
        await self._send_raw(f"JOIN {channels}")
        log.info(f"Joined {channels}")

    async def send_part(self, channels: str) -> None:
        await self._send_raw(f"PART {channels}")
        log.info(f"Left {channels}")

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    async def iter_events(self) -> AsyncGenerator[IrcEvent, None]:
        """
        Read lines and yield decoded events until the remote closes.
        """
        if not self.reader:
            raise RuntimeError("iter_events called before connect()")

        while True:
            line = await self.reader.readline()

            if line == b"":
                log.warning("Twitch IRC connection closed by remote")
                break

            decoded = line.decode("utf-8", errors="replace").rstrip("\r\n")
            if not decoded.strip():
                continue

            event = parse_line(decoded)
            if event is None:
                log.debug(f"Ignoring undecodable line: {decoded!r}")
                continue

            if event.command == "PING":
                await self._handle_ping(event)
                continue

            yield event

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _send_raw(self, data: str) -> None:
        if not self.writer:
            raise RuntimeError("IRC writer is not initialized")

        payload = (data + "\r\n").encode("utf-8")
        self.writer.write(payload)
        await self.writer.drain()

    async def _handle_ping(self, event: IrcEvent) -> None:
        # Twitch IRC sends: PING :tmi.twitch.tv
        payload = event.params[-1] if event.params else "tmi.twitch.tv"
        await self._send_raw(f"PONG :{payload}")
        log.debug("Responded to Twitch PING")

    @staticmethod
    def _normalize_token(token: str) -> str:
        token = token.strip()
        if not token.startswith("oauth:"):
            return f"oauth:{token}"
        return token

    @staticmethod
    def _normalize_channel(channel: str) -> str:
        channel = channel.strip()
        return channel if channel.startswith("#") else f"#{channel}"


# ---------------------------------------------------------------------- #
# Line decoding
# ---------------------------------------------------------------------- #

def unescape_tag_value(value: str) -> str:
    out = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt is None:
            break
        out.append(_TAG_ESCAPES.get(nxt, nxt))
    return "".join(out)


def _split_tags(raw: str) -> Tuple[Optional[List[Tag]], str]:
    if not raw.startswith("@"):
        return None, raw

    tags_part, _, remainder = raw.partition(" ")
    tags: List[Tag] = []
    for pair in tags_part[1:].split(";"):
        if not pair:
            continue
        if "=" in pair:
            key, value = pair.split("=", 1)
            tags.append((key, unescape_tag_value(value)))
        else:
            tags.append((pair, None))
    return tags, remainder.lstrip(" ")


def _split_prefix(raw: str) -> Tuple[Optional[str], str]:
    if not raw.startswith(":"):
        return None, raw
    prefix, _, rest = raw[1:].partition(" ")
    return prefix, rest.lstrip(" ")


def _split_params(rest: str) -> Tuple[str, List[str]]:
    if rest.startswith(":"):
        return "", [rest[1:]]

    if " :" in rest:
        middle, trailing = rest.split(" :", 1)
        parts = middle.split()
        if not parts:
            return "", []
        return parts[0], parts[1:] + [trailing]

    parts = rest.split()
    if not parts:
        return "", []
    return parts[0], parts[1:]


def parse_line(raw: str) -> Optional[IrcEvent]:
    """Decode one IRC line (without CRLF). Returns None if no command."""
    tags, remainder = _split_tags(raw)
    prefix, rest = _split_prefix(remainder)
    command, params = _split_params(rest)

    if not command:
        return None

    return IrcEvent(
        command=command.upper(),
        params=params,
        tags=tags,
        prefix=prefix,
        raw=raw,
    )
