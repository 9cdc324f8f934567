from dataclasses import dataclass, field
from typing import Dict, List, Sequence

# (flag, settings field), in the order they are consumed
VALUE_FLAGS = (
    ("-InstallHref", "remote_href"),
    ("-SystemRepositoryPath", "system_root"),
    ("-ProxyUsername", "proxy_username"),
    ("-ProxyPassword", "proxy_password"),
    ("-ProxyHref", "proxy_href"),
    ("-ShellInstall", "install_action"),
)
SWITCH_FLAGS = (
    ("-ShellPanic", "panic"),
    ("-UseSystem", "use_system"),
)
DEBUG_FLAG = "-ShellDebug"


@dataclass
class BootstrapArgs:
    remaining: List[str] = field(default_factory=list)
    options: Dict[str, object] = field(default_factory=dict)
    consumed: List[str] = field(default_factory=list)


def _find(args: List[str], flag: str, stop: int) -> int:
    for i in range(stop):
        if args[i].lower() == flag.lower():
            return i
    return -1


def consume_bootstrap_args(args: Sequence[str]) -> BootstrapArgs:
    """
    Take the bootstrap's own flags out of the command line.

    Flags are matched case-insensitively, in their single-dash form, and only
    their first occurrence is consumed. A flag expecting a value that comes
    last on the line has no value and is left for the tool. Every other
    argument is passed through in order.

    Example:
        wrapboot build -shellpanic -InstallHref http://mirror/ --verbose

        remaining: ["build", "--verbose"]
        options:   {"remote_href": "http://mirror/", "panic": True}
        consumed:  ["InstallHref", "ShellPanic"]
    """
    result = BootstrapArgs(remaining=list(args))
    remaining = result.remaining

    if any(DEBUG_FLAG.lower() in a.lower() for a in remaining):
        result.options["debug"] = True
        result.consumed.append(DEBUG_FLAG[1:])
        remaining[:] = [a for a in remaining if DEBUG_FLAG.lower() not in a.lower()]

    for flag, name in VALUE_FLAGS:
        i = _find(remaining, flag, len(remaining) - 1)
        if i != -1:
            result.options[name] = remaining[i + 1]
            result.consumed.append(flag[1:])
            del remaining[i : i + 2]

    for flag, name in SWITCH_FLAGS:
        i = _find(remaining, flag, len(remaining))
        if i != -1:
            result.options[name] = True
            result.consumed.append(flag[1:])
            del remaining[i]

    return result
