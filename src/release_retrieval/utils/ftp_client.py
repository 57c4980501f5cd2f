"""Blocking FTP client used by the file retrievers.

ftplib is synchronous; the retrievers run ``FTPClient.retrieve`` through
``asyncio.to_thread`` so the event loop is never blocked.

The client does not decide whether a transfer failed. It returns the payload
(or None when the server never opened a data stream) together with the final
server reply, and the caller inspects the reply.

Example usage:
    client = FTPClient(FTPClientConfig(passive=True))
    transfer = client.retrieve("ftp.ebi.ac.uk", "/pub/databases/file.txt")
    if transfer.reply.is_permanent_failure:
        ...
"""

from __future__ import annotations

import ftplib
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

ANONYMOUS_USER = "anonymous"

_REPLY_CODE = re.compile(r"^(\d{3})")
_PERMANENT_FAILURE = re.compile(r"^5\d\d.*", re.DOTALL)


@dataclass(frozen=True, slots=True)
class FTPClientConfig:
    """Configuration for the FTP client.

    Attributes:
        timeout: Socket timeout in seconds
        passive: Use passive mode (needed behind NAT or inside containers)
        compressed_mode: Ask the server for MODE C transfers
    """

    timeout: float = 30.0
    passive: bool = False
    compressed_mode: bool = True


@dataclass(frozen=True, slots=True)
class FTPReply:
    """A server reply: numeric code plus the full reply string."""

    code: int
    message: str

    @classmethod
    def parse(cls, message: str) -> FTPReply:
        match = _REPLY_CODE.match(message)
        return cls(code=int(match.group(1)) if match else 0, message=message)

    @property
    def is_permanent_failure(self) -> bool:
        """True for any 5xx reply code or reply string."""
        return 500 <= self.code < 600 or bool(_PERMANENT_FAILURE.match(self.message))


@dataclass(frozen=True, slots=True)
class FTPTransfer:
    """Result of a RETR: the payload (None if no stream was opened) and final reply."""

    data: bytes | None
    reply: FTPReply


def decode_compressed(data: bytes, filler: int = 0) -> bytes:
    """Decode a MODE C (RFC 959 section 3.4.3) byte stream.

    Escape sequences (a zero byte followed by a descriptor) carry no file data
    and are dropped.
    """
    out = bytearray()
    i = 0
    size = len(data)
    while i < size:
        header = data[i]
        if header == 0:
            i += 2
        elif header & 0x80 == 0:
            count = header & 0x7F
            out += data[i + 1 : i + 1 + count]
            i += 1 + count
        elif header & 0xC0 == 0x80:
            count = header & 0x3F
            if i + 1 < size:
                out += bytes([data[i + 1]]) * count
            i += 2
        else:
            out += bytes([filler]) * (header & 0x3F)
            i += 1
    return bytes(out)


class FTPClient:
    """Retrieves a single file over FTP."""

    def __init__(
        self,
        config: FTPClientConfig | None = None,
        *,
        ftp_factory: Callable[..., Any] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or FTPClientConfig()
        self._ftp_factory = ftp_factory or ftplib.FTP
        self._logger = logger or logging.getLogger(__name__)

    def retrieve(
        self,
        host: str,
        path: str,
        *,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
    ) -> FTPTransfer:
        """Log in, RETR ``path`` in binary mode and return the payload and reply.

        A blank user logs in as ``anonymous`` with an empty password. The
        session is ended with QUIT only when the final reply is not a
        permanent failure; otherwise the socket is just closed.

        Raises:
            ftplib.all_errors: For connection failures and unexpected replies
                before the transfer starts.
        """
        if not user or not user.strip():
            user = ANONYMOUS_USER
        if not password or not password.strip():
            password = ""

        ftp = self._ftp_factory(timeout=self.config.timeout)
        try:
            ftp.connect(host, port or ftplib.FTP_PORT)
            ftp.set_pasv(self.config.passive)
            try:
                ftp.login(user, password)
            except ftplib.error_perm as e:
                self._logger.error("FTP login to %s as %s rejected: %s", host, user, e)
                ftp.close()
                return FTPTransfer(data=None, reply=FTPReply.parse(str(e)))
            self._logger.debug("connect/login reply: %s", getattr(ftp, "lastresp", ""))

            ftp.voidcmd("TYPE I")
            compressed = self._enter_compressed_mode(ftp)

            chunks: list[bytes] = []
            data: bytes | None
            try:
                reply = FTPReply.parse(ftp.retrbinary(f"RETR {path}", chunks.append))
                data = b"".join(chunks)
                if compressed:
                    data = decode_compressed(data)
            except (ftplib.error_perm, ftplib.error_temp) as e:
                self._logger.error("No data returned from server for %s%s", host, path)
                reply = FTPReply.parse(str(e))
                data = None

            self._logger.debug("retrieve file reply: %s", reply.message)
            if reply.is_permanent_failure:
                ftp.close()
            else:
                self._quit(ftp)
            return FTPTransfer(data=data, reply=reply)
        except BaseException:
            ftp.close()
            raise

    def _quit(self, ftp: Any) -> None:
        try:
            ftp.quit()
        except ftplib.all_errors as e:
            self._logger.debug("QUIT failed (%s); closing connection", e)
            ftp.close()

    def _enter_compressed_mode(self, ftp: Any) -> bool:
        if not self.config.compressed_mode:
            return False
        try:
            ftp.sendcmd("MODE C")
        except (ftplib.error_perm, ftplib.error_temp, ftplib.error_reply) as e:
            self._logger.debug("Server declined compressed mode (%s); using stream mode", e)
            return False
        return True
