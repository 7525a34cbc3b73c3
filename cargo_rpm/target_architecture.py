"""Derive RPM target architecture names from Rust target triples.

Only architectures whose names differ between rustc and rpmbuild are listed;
everything else is passed through unchanged.

See:
- https://doc.rust-lang.org/nightly/rustc/platform-support.html
- https://fedoraproject.org/wiki/Architectures
- https://github.com/rpm-software-management/rpm/blob/rpm-4.14.3-release/rpmrc.in#L156
"""

from .exceptions import ParseError

# rustc arch -> rpmbuild --target arch
RPM_ARCH_ALIASES: dict[str, str] = {
    "mipsisa32r6": "mipsr6",
    "mipsisa32r6el": "mipsr6el",
    "mipsisa64r6": "mips64r6",
    "mipsisa64r6el": "mips64r6el",
    "powerpc": "ppc",
    "powerpc64": "ppc64",
    "powerpc64le": "ppc64le",
    "riscv64gc": "riscv64",
    "x86": "i386",
}


def split_target(rust_target_triple: str) -> tuple[str, str]:
    """
    Split a target triple into its (arch, abi) components.

    The abi is the last dash-separated component, or an empty string if
    the triple has only one component.

    Raises:
        ParseError: If the triple has no arch component
    """
    parts = rust_target_triple.split("-")
    arch = parts[0]
    if not arch:
        raise ParseError(f"no arch in the rust target {rust_target_triple!r}!")
    abi = parts[-1] if len(parts) > 1 else ""
    return arch, abi


def get_target_architecture(rust_target_triple: str) -> str:
    """
    Map a Rust target triple to the architecture name ``rpmbuild`` expects.

    Examples:
        >>> get_target_architecture("x86_64-unknown-linux-gnu")
        'x86_64'
        >>> get_target_architecture("armv7-unknown-linux-gnueabihf")
        'armv7hl'
    """
    arch, abi = split_target(rust_target_triple)

    if arch in RPM_ARCH_ALIASES:
        return RPM_ARCH_ALIASES[arch]
    if arch.startswith("arm"):
        return "armv7hl" if abi.endswith("hf") else "armv7l"
    return arch
