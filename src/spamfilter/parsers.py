"""E-mail parsing and tokenization.

Reads RFC 822 / MIME messages from disk and turns them into ``Email``
objects holding the ordered sequence of raw whitespace-delimited words.
HTML parts are reduced to their visible text first.
"""

from __future__ import annotations

import html as html_module
import logging
import re
from email import message_from_bytes, policy
from email.header import decode_header
from email.message import Message
from html.parser import HTMLParser as StdHTMLParser
from pathlib import Path
from typing import Optional

from .models import Email, EmailClass

logger = logging.getLogger(__name__)

#: Headers whose values are tokenized along with the body.
METADATA_HEADERS: tuple[str, ...] = ("subject", "from", "to", "reply-to")

_BLOCK_TAGS = frozenset({"p", "div", "br", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "td"})
_SKIP_TAGS = frozenset({"script", "style", "head"})


class _TextExtractor(StdHTMLParser):
    """Collects visible text, plus link targets, from an HTML fragment."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._skip = 0

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag in _SKIP_TAGS:
            self._skip += 1
        elif tag == "a":
            # Link targets are strong spam evidence; keep them as tokens
            for name, value in attrs:
                if name == "href" and value:
                    self.parts.append(f" {value} ")

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIP_TAGS and self._skip:
            self._skip -= 1
        if tag in _BLOCK_TAGS:
            self.parts.append("\n")

    def handle_data(self, data: str) -> None:
        if not self._skip:
            self.parts.append(data)


def html_to_text(markup: str) -> str:
    """Remove HTML tags and decode entities to produce plain text."""
    extractor = _TextExtractor()
    extractor.feed(markup)
    extractor.close()
    text = html_module.unescape(" ".join(extractor.parts))
    return re.sub(r"[ \t]{2,}", " ", text)


def tokenize(text: str) -> list[str]:
    """Split text into raw whitespace-delimited words."""
    return text.split()


class EmailParser:
    """Parse e-mail files into ``Email`` objects.

    Example::

        parser = EmailParser()
        email = parser.parse(Path("corpus/ham-0001.eml"))
        email.words[:5]

    Args:
        separate_metadata: Parse headers and body separately and tokenize
            only the metadata headers. When False, the raw message text,
            headers included, is tokenized as one block.
        split_multipart: Walk MIME parts and tokenize each text part. When
            False, the undecoded message body is tokenized as is.
        strip_html: Reduce ``text/html`` parts to their visible text.
    """

    def __init__(
        self,
        separate_metadata: bool = True,
        split_multipart: bool = True,
        strip_html: bool = True,
    ) -> None:
        self.separate_metadata = separate_metadata
        self.split_multipart = split_multipart
        self.strip_html = strip_html

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, path: str | Path, label: Optional[EmailClass] = None) -> Email:
        """Parse an e-mail file.

        Args:
            path: Path to the message file.
            label: Optional explicit label; inferred from the name otherwise.

        Returns:
            Email named after the file.

        Raises:
            FileNotFoundError: If the file does not exist.
            IsADirectoryError: If the path is a directory.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        raw = path.read_bytes()
        logger.debug("Parsing %s (%d bytes)", path, len(raw))
        return self.parse_bytes(path.name, raw, label=label)

    def parse_bytes(self, name: str, raw: bytes, label: Optional[EmailClass] = None) -> Email:
        """Parse a message held in memory."""
        return Email(name=name, words=tokenize(self.extract_text(raw)), label=label)

    def parse_text(self, name: str, raw: str, label: Optional[EmailClass] = None) -> Email:
        return self.parse_bytes(name, raw.encode("utf-8", errors="replace"), label=label)

    def extract_text(self, raw: bytes) -> str:
        """Text that will be tokenized for a raw message."""
        message = message_from_bytes(raw, policy=policy.compat32)

        sections: list[str] = []
        if self.separate_metadata:
            for header in METADATA_HEADERS:
                for value in message.get_all(header, []):
                    sections.append(_header_text(value))
        else:
            sections.append(_header_block(message))

        if self.split_multipart:
            for part in message.walk():
                if part.is_multipart():
                    continue
                text = self._part_text(part)
                if text:
                    sections.append(text)
        else:
            payload = message.get_payload()
            if isinstance(payload, list):
                payload = "\n".join(str(p) for p in payload)
            sections.append(payload or "")

        return "\n".join(sections)

    def to_dict(self) -> dict:
        return {
            "separate_metadata": self.separate_metadata,
            "split_multipart": self.split_multipart,
            "strip_html": self.strip_html,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EmailParser":
        return cls(
            separate_metadata=data.get("separate_metadata", True),
            split_multipart=data.get("split_multipart", True),
            strip_html=data.get("strip_html", True),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _part_text(self, part: Message) -> str:
        content_type = part.get_content_type()
        if not content_type.startswith("text/"):
            return ""

        payload = part.get_payload(decode=True)
        if payload is None:
            return ""
        charset = part.get_content_charset() or "utf-8"
        try:
            text = payload.decode(charset, errors="replace")
        except LookupError:
            text = payload.decode("latin-1", errors="replace")

        if content_type == "text/html" and self.strip_html:
            text = html_to_text(text)
        return text


def _header_text(value) -> str:
    """Decode an RFC 2047 header value to plain text."""
    parts = []
    for chunk, charset in decode_header(str(value)):
        if isinstance(chunk, bytes):
            try:
                parts.append(chunk.decode(charset or "utf-8", errors="replace"))
            except LookupError:
                parts.append(chunk.decode("latin-1", errors="replace"))
        else:
            parts.append(chunk)
    return " ".join(parts)


def _header_block(message: Message) -> str:
    return "\n".join(f"{key}: {_header_text(value)}" for key, value in message.items())
