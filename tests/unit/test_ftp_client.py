"""Tests for the FTP client utility."""

from __future__ import annotations

import ftplib
from unittest.mock import MagicMock, call

import pytest

from release_retrieval.utils.ftp_client import (
    FTPClient,
    FTPClientConfig,
    FTPReply,
    decode_compressed,
)


class TestFTPReply:
    """Tests for FTPReply parsing."""

    def test_parse_code(self) -> None:
        """The leading three digits become the code."""
        reply = FTPReply.parse("226 Transfer complete")

        assert reply.code == 226
        assert reply.message == "226 Transfer complete"
        assert reply.is_permanent_failure is False

    def test_5xx_is_permanent_failure(self) -> None:
        """A 5xx reply is a permanent failure."""
        assert FTPReply.parse("500 ERROR").is_permanent_failure is True
        assert FTPReply.parse("550 No such file").is_permanent_failure is True

    def test_5xx_pattern_in_message_only(self) -> None:
        """A 5xx-looking reply string counts even if the code was lost."""
        assert FTPReply(code=0, message="530 Not logged in").is_permanent_failure is True

    def test_unparseable_reply(self) -> None:
        """Replies without a code parse to code 0."""
        reply = FTPReply.parse("garbage")

        assert reply.code == 0
        assert reply.is_permanent_failure is False


class TestDecodeCompressed:
    """Tests for MODE C decoding."""

    def test_literal_block(self) -> None:
        """A count byte with the high bit clear is followed by literal bytes."""
        assert decode_compressed(b"\x03abc") == b"abc"

    def test_replicated_byte(self) -> None:
        """A 10xxxxxx header repeats the following byte."""
        assert decode_compressed(b"\x84z") == b"zzzz"

    def test_filler_bytes(self) -> None:
        """A 11xxxxxx header emits filler bytes."""
        assert decode_compressed(b"\xc3", filler=0x20) == b"   "

    def test_escape_sequences_are_dropped(self) -> None:
        """Escape sequences carry no file data."""
        assert decode_compressed(b"\x02hi\x00\x40\x01!") == b"hi!"


class TestFTPClient:
    """Tests for FTPClient.retrieve()."""

    def test_anonymous_login_when_no_credentials(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """Blank credentials log in as anonymous with an empty password."""
        client = FTPClient(ftp_factory=ftp_factory)

        client.retrieve("ftp.example.org", "/pub/file.txt", user="  ", password=None)

        ftp_session.login.assert_called_once_with("anonymous", "")

    def test_supplied_credentials_are_used(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """Given credentials are passed to login."""
        client = FTPClient(ftp_factory=ftp_factory)

        client.retrieve("ftp.example.org", "/pub/file.txt", user="me", password="pw")

        ftp_session.login.assert_called_once_with("me", "pw")

    def test_passive_mode_set_before_login(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """Passive mode is switched on before logging in."""
        client = FTPClient(FTPClientConfig(passive=True), ftp_factory=ftp_factory)

        client.retrieve("ftp.example.org", "/pub/file.txt")

        names = [c[0] for c in ftp_session.method_calls]
        assert names.index("set_pasv") < names.index("login")
        ftp_session.set_pasv.assert_called_once_with(True)

    def test_successful_transfer(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """Binary type is set, the file is retrieved and the session quit."""
        client = FTPClient(FTPClientConfig(timeout=12.0), ftp_factory=ftp_factory)

        transfer = client.retrieve("ftp.example.org", "/pub/file.txt", port=2121)

        ftp_factory.assert_called_once_with(timeout=12.0)
        ftp_session.connect.assert_called_once_with("ftp.example.org", 2121)
        ftp_session.voidcmd.assert_called_once_with("TYPE I")
        ftp_session.sendcmd.assert_called_once_with("MODE C")
        assert ftp_session.retrbinary.call_args[0][0] == "RETR /pub/file.txt"
        assert transfer.data == b"ftp payload"
        assert transfer.reply.code == 226
        ftp_session.quit.assert_called_once()

    def test_compressed_transfer_is_decoded(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """When the server accepts MODE C the payload is decoded."""
        ftp_session.sendcmd.side_effect = None
        ftp_session.sendcmd.return_value = "200 MODE C ok"

        def _retrbinary(cmd, callback, *args):  # type: ignore[no-untyped-def]
            callback(b"\x05hello\x83!")
            return "226 Transfer complete"

        ftp_session.retrbinary.side_effect = _retrbinary
        client = FTPClient(ftp_factory=ftp_factory)

        transfer = client.retrieve("ftp.example.org", "/pub/file.txt")

        assert transfer.data == b"hello!!!"

    def test_5xx_reply_closes_without_quit(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """A 5xx reply is returned and the session closed, not quit."""
        ftp_session.retrbinary.side_effect = None
        ftp_session.retrbinary.return_value = "500 ERROR"
        client = FTPClient(ftp_factory=ftp_factory)

        transfer = client.retrieve("ftp.example.org", "/pub/file.txt")

        assert transfer.reply.is_permanent_failure
        assert transfer.reply.message == "500 ERROR"
        ftp_session.quit.assert_not_called()
        ftp_session.close.assert_called()

    def test_missing_stream_logged_not_raised(
        self,
        ftp_factory: MagicMock,
        ftp_session: MagicMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A RETR the server refuses returns no data and logs an error."""
        ftp_session.retrbinary.side_effect = ftplib.error_perm("550 No such file")
        client = FTPClient(ftp_factory=ftp_factory)

        with caplog.at_level("ERROR"):
            transfer = client.retrieve("ftp.example.org", "/pub/missing.txt")

        assert transfer.data is None
        assert transfer.reply.code == 550
        assert "No data returned from server for ftp.example.org/pub/missing.txt" in caplog.text

    def test_rejected_login(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """A refused login returns the reply without attempting a transfer."""
        ftp_session.login.side_effect = ftplib.error_perm("530 Login incorrect.")
        client = FTPClient(ftp_factory=ftp_factory)

        transfer = client.retrieve("ftp.example.org", "/pub/file.txt")

        assert transfer.data is None
        assert transfer.reply.is_permanent_failure
        ftp_session.retrbinary.assert_not_called()

    def test_connection_failure_propagates(
        self, ftp_factory: MagicMock, ftp_session: MagicMock
    ) -> None:
        """Socket errors propagate after the session is closed."""
        ftp_session.connect.side_effect = OSError("Connection refused")
        client = FTPClient(ftp_factory=ftp_factory)

        with pytest.raises(OSError, match="Connection refused"):
            client.retrieve("ftp.example.org", "/pub/file.txt")

        assert call.close() in ftp_session.method_calls
