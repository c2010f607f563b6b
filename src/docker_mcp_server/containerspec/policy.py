"""
Fixed policy tables used by the security validator and spec compiler.

All tables are immutable and created once at import time. Build a variant
with dataclasses.replace(DEFAULT_POLICY, ...) rather than mutating anything.
"""

from dataclasses import dataclass

KNOWN_CAPABILITIES = frozenset(
    {
        "CAP_CHOWN",
        "CAP_DAC_OVERRIDE",
        "CAP_DAC_READ_SEARCH",
        "CAP_FOWNER",
        "CAP_FSETID",
        "CAP_KILL",
        "CAP_SETGID",
        "CAP_SETUID",
        "CAP_SETPCAP",
        "CAP_LINUX_IMMUTABLE",
        "CAP_NET_BIND_SERVICE",
        "CAP_NET_BROADCAST",
        "CAP_NET_ADMIN",
        "CAP_NET_RAW",
        "CAP_IPC_LOCK",
        "CAP_IPC_OWNER",
        "CAP_SYS_MODULE",
        "CAP_SYS_RAWIO",
        "CAP_SYS_CHROOT",
        "CAP_SYS_PTRACE",
        "CAP_SYS_PACCT",
        "CAP_SYS_ADMIN",
        "CAP_SYS_BOOT",
        "CAP_SYS_NICE",
        "CAP_SYS_RESOURCE",
        "CAP_SYS_TIME",
        "CAP_SYS_TTY_CONFIG",
        "CAP_MKNOD",
        "CAP_LEASE",
        "CAP_AUDIT_WRITE",
        "CAP_AUDIT_CONTROL",
        "CAP_SETFCAP",
        "CAP_MAC_OVERRIDE",
        "CAP_MAC_ADMIN",
        "CAP_SYSLOG",
        "CAP_WAKE_ALARM",
        "CAP_BLOCK_SUSPEND",
        "CAP_AUDIT_READ",
    }
)

ALLOWED_SECURITY_OPT_PREFIXES = (
    "apparmor:",
    "seccomp:",
    "label:",
    "no-new-privileges",
    "systempaths=",
    "proc-opts=",
)

DANGEROUS_DEVICE_PREFIXES = ("/dev/mem", "/dev/kmem", "/dev/raw", "/dev/disk")

RESTART_POLICIES = frozenset({"no", "always", "unless-stopped", "on-failure"})

# (path, mount options) applied by the hardened profile
SECURE_TMPFS_MOUNTS = (
    ("/tmp", "rw,noexec,nosuid,size=100m"),
    ("/var/tmp", "rw,noexec,nosuid,size=50m"),
    ("/run", "rw,noexec,nosuid,size=50m"),
)

# (name, soft, hard) applied by the hardened profile
SECURE_ULIMITS = (
    ("nofile", 1024, 4096),
    ("nproc", 100, 200),
    ("fsize", 100 * 1024 * 1024, 200 * 1024 * 1024),
    ("memlock", 64 * 1024, 64 * 1024),
    ("stack", 8 * 1024 * 1024, 8 * 1024 * 1024),
)


@dataclass(frozen=True)
class SecurityPolicy:
    """Read-only configuration consulted by every validation call"""

    known_capabilities: frozenset[str] = KNOWN_CAPABILITIES
    security_opt_prefixes: tuple[str, ...] = ALLOWED_SECURITY_OPT_PREFIXES
    dangerous_device_prefixes: tuple[str, ...] = DANGEROUS_DEVICE_PREFIXES
    restart_policies: frozenset[str] = RESTART_POLICIES
    default_user: str = "1000:1000"
    default_device_permissions: str = "rwm"
    allow_root_user: bool = False
    secure_tmpfs_mounts: tuple[tuple[str, str], ...] = SECURE_TMPFS_MOUNTS
    secure_ulimits: tuple[tuple[str, int, int], ...] = SECURE_ULIMITS


DEFAULT_POLICY = SecurityPolicy()
