import codecs
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union
from src.core.syslog2 import *


# [09.09.23, 14:35:02] ~ john_doe: Hello world!
TRANSCRIPT_LINE = re.compile(
    r"^\s*\[(?P<timestamp>[^\]]*)\]\s*~?\s*(?P<sender>[^:]+?)\s*:\s?(?P<message>.*)$"
)
FIRST_TOKEN = re.compile(r"\S+")


@dataclass
class ChatLine:
    line_number: int
    raw: str
    # set when the line is not valid utf-8; raw then holds a lossy decode
    decode_error: Optional[str] = None


@dataclass
class ParsedMessage:
    line_number: int
    text: str
    sender: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class LineParser:
    """Extracts the message body from single transcript lines."""

    def parse_line(self, line: str, line_number: int = 0) -> Optional[ParsedMessage]:
        """
        Parse one transcript line.

        Lines shaped like "[<date>, <time>] ~ <sender>: <message>" give the
        text after the sender separator. Any other non-blank line falls back
        to its first whitespace-delimited token.

        Returns:
            ParsedMessage, or None when nothing can be extracted.
        """
        m = TRANSCRIPT_LINE.match(line)
        if m:
            parsed = ParsedMessage(
                line_number=line_number,
                text=m.group("message").strip(),
                sender=m.group("sender").strip(),
                timestamp=m.group("timestamp").strip(),
            )
            if parsed.is_empty:
                syslog2(LOG_WARNING, "empty message passed through", line=line_number, content=line)
            return parsed

        token = FIRST_TOKEN.search(line)
        if token is None:
            return None
        return ParsedMessage(line_number=line_number, text=token.group(0))

    def parse(self, chat_line: ChatLine) -> Optional[ParsedMessage]:
        if chat_line.decode_error is not None:
            return None
        return self.parse_line(chat_line.raw, chat_line.line_number)


def iter_lines(file_path: Union[str, Path]) -> Iterator[ChatLine]:
    """
    Yield transcript lines with 1-based line numbers, newline stripped.

    Lines are decoded one at a time so a line with invalid utf-8 comes back
    with decode_error set instead of ending the read. A leading BOM is dropped.
    """
    with open(file_path, "rb") as f:
        for i, data in enumerate(f, start=1):
            data = data.rstrip(b"\r\n")
            if i == 1 and data.startswith(codecs.BOM_UTF8):
                data = data[len(codecs.BOM_UTF8):]
            try:
                chat_line = ChatLine(line_number=i, raw=data.decode("utf-8"))
            except UnicodeDecodeError as e:
                chat_line = ChatLine(line_number=i, raw=data.decode("utf-8", errors="replace"),
                                     decode_error=str(e))
            yield chat_line
