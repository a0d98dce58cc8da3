"""Tests for family module."""

import socket
from unittest.mock import MagicMock, patch

import pytest

from oneping.errors import ResolutionError, SetupError
from oneping.family import IPv4, IPv6, for_version


class TestResolve:
    """Tests for Family.resolve against the system resolver."""

    def test_ipv4_literal(self):
        assert IPv4().resolve("127.0.0.1") == ("127.0.0.1", 0)

    def test_ipv6_literal(self):
        sockaddr = IPv6().resolve("::1")
        assert sockaddr[0] == "::1"
        assert sockaddr[1] == 0

    def test_ipv4_literal_for_ipv6(self):
        """Test an address of the other family is rejected."""
        with pytest.raises(ResolutionError, match="Cannot resolve host 127.0.0.1"):
            IPv6().resolve("127.0.0.1")

    def test_ipv6_literal_for_ipv4(self):
        with pytest.raises(ResolutionError):
            IPv4().resolve("::1")

    def test_overlong_label(self):
        """Test an idna encoding failure becomes a resolution error."""
        with pytest.raises(ResolutionError, match="Cannot resolve host"):
            IPv4().resolve("a" * 64 + ".example")

    @patch("socket.getaddrinfo")
    def test_no_port_requested(self, mock_resolve):
        """Test no service is passed, since raw sockets have no ports."""
        mock_resolve.return_value = [
            (socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP, "", ("192.0.2.1", 0))
        ]

        IPv4().resolve("example.com")

        assert mock_resolve.call_args[0] == ("example.com", None)

    @patch("socket.getaddrinfo")
    def test_empty_answer(self, mock_resolve):
        mock_resolve.return_value = []
        with pytest.raises(ResolutionError, match="no addresses"):
            IPv4().resolve("example.com")


class TestIPv6Setup:
    """Tests for IPv6 socket setup."""

    @pytest.mark.skipif(
        not hasattr(socket, "IPV6_RECVHOPLIMIT"), reason="no IPV6_RECVHOPLIMIT on this platform"
    )
    def test_configure_failure_closes_socket(self):
        """Test a rejected socket option during open is a setup error."""
        with patch("oneping.family.socket.socket") as mock_socket_class:
            sock = MagicMock()
            sock.setsockopt.side_effect = OSError(92, "Protocol not available")
            mock_socket_class.return_value = sock

            with pytest.raises(SetupError, match="cannot configure raw socket"):
                IPv6().open_socket()

        sock.close.assert_called_once()

    def test_bind_failure_closes_socket(self):
        with patch("oneping.family.socket.socket") as mock_socket_class:
            sock = MagicMock()
            sock.bind.side_effect = OSError(99, "Cannot assign requested address")
            mock_socket_class.return_value = sock

            with pytest.raises(SetupError):
                IPv6().open_socket()

        sock.close.assert_called_once()

    def test_hop_limit_failure(self):
        """Test a rejected hop limit is a setup error."""
        sock = MagicMock()
        sock.setsockopt.side_effect = OSError(22, "Invalid argument")

        with pytest.raises(SetupError, match="cannot set hop limit 0"):
            IPv6().set_hop_limit(sock, 0)

    def test_hop_limit(self):
        sock = MagicMock()
        IPv6().set_hop_limit(sock, 7)
        sock.setsockopt.assert_called_once_with(
            socket.IPPROTO_IPV6, socket.IPV6_UNICAST_HOPS, 7
        )


class TestForVersion:
    """Tests for for_version function."""

    def test_versions(self):
        assert for_version(4).version == 4
        assert for_version(6).version == 6
