"""Access to Linux TUN/TAP network devices."""

from __future__ import annotations

import fcntl
import logging
import os
import struct

logger = logging.getLogger(__name__)

IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
TUNSETIFF = 0x400454CA
IFNAMSIZ = 16
TUN_CLONE_DEVICE = "/dev/net/tun"
DEFAULT_READ_SIZE = 65536

_IFREQ_SIZE = 40
_IFREQ_HEAD = struct.Struct("16sH")


def _pack_ifreq(name: str, flags: int) -> bytes:
    raw = name.encode()
    if len(raw) >= IFNAMSIZ:
        raise ValueError(f"interface name too long: {name!r}")
    return _IFREQ_HEAD.pack(raw, flags).ljust(_IFREQ_SIZE, b"\0")


def _unpack_name(ifreq: bytes) -> str:
    return ifreq[:IFNAMSIZ].split(b"\0", 1)[0].decode()


class TunDevice:
    """An open TUN/TAP device: one packet per read, one packet per write."""

    def __init__(self, fd: int, name: str = "") -> None:
        self._fd: int | None = fd
        self.name = name

    @property
    def closed(self) -> bool:
        return self._fd is None

    def _require_fd(self) -> int:
        if self._fd is None:
            raise ValueError("I/O operation on closed TUN device")
        return self._fd

    def read(self, size: int = DEFAULT_READ_SIZE) -> bytes:
        """Read one packet of at most ``size`` bytes."""
        fd = self._require_fd()
        try:
            return os.read(fd, size)
        except OSError as exc:
            logger.error("tun_read: %s", exc)
            raise

    def write(self, data: bytes) -> int:
        """Write one packet and return the number of bytes written."""
        fd = self._require_fd()
        try:
            return os.write(fd, data)
        except OSError as exc:
            logger.error("tun_write: %s", exc)
            raise

    def fileno(self) -> int:
        return self._require_fd()

    def close(self) -> None:
        if self._fd is not None:
            fd, self._fd = self._fd, None
            os.close(fd)

    def __enter__(self) -> "TunDevice":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"TunDevice(fd={self._fd}, name={self.name!r})"


def open_tun(name: str = "", flags: int = IFF_TUN | IFF_NO_PI) -> TunDevice:
    """Open (or create) a TUN/TAP interface; an empty name lets the kernel choose."""
    ifreq = _pack_ifreq(name, flags)
    try:
        fd = os.open(TUN_CLONE_DEVICE, os.O_RDWR)
    except OSError as exc:
        logger.error("open %s: %s", TUN_CLONE_DEVICE, exc)
        raise
    try:
        result = fcntl.ioctl(fd, TUNSETIFF, ifreq)
    except OSError as exc:
        logger.error("ioctl TUNSETIFF: %s", exc)
        os.close(fd)
        raise
    device = TunDevice(fd, _unpack_name(result))
    logger.info("[TUN] allocated %s (fd=%d)", device.name, fd)
    return device