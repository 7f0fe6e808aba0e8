"""Open worktrees in editors, terminals and file managers."""
import shlex
import shutil
import subprocess
import sys
from typing import Optional

from grovr.exceptions import LauncherError
from grovr.logging_config import get_logger

logger = get_logger(__name__)

IDE_PRESETS = {
    "code": "code",
    "cursor": "cursor",
    "idea": "idea",
    "webstorm": "webstorm",
    "pycharm": "pycharm",
    "goland": "goland",
}

# Terminal emulator -> flag that sets its starting directory (None: use cwd)
LINUX_TERMINALS = {
    "gnome-terminal": "--working-directory",
    "konsole": "--workdir",
    "xterm": None,
}


def _login_shell() -> str:
    return "/bin/zsh" if sys.platform == "darwin" else "sh"


def _spawn(args: list, what: str, cwd: Optional[str] = None) -> None:
    """Start a process without waiting for it."""
    try:
        subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
            cwd=cwd,
        )
    except OSError as e:
        raise LauncherError(f"Failed to open {what}: {e}") from e
    logger.debug(f"Spawned {what}: {args}")


def open_ide(path: str, ide_preset: str, custom_command: Optional[str] = None) -> None:
    """Open ``path`` in an editor.

    The command runs through a login shell so GUI sessions see the user's
    PATH. Presets are started and left running; a custom command is waited on
    and its exit status checked.

    Raises:
        LauncherError: unknown preset, missing custom command, or the command failed
    """
    if ide_preset == "custom":
        if not custom_command:
            raise LauncherError("No custom command provided")
        command = custom_command
    elif ide_preset in IDE_PRESETS:
        command = IDE_PRESETS[ide_preset]
    else:
        raise LauncherError(f"Unknown IDE preset: {ide_preset}")

    shell_cmd = f"{command} {shlex.quote(path)}"
    args = [_login_shell(), "-l", "-c", shell_cmd]

    if ide_preset != "custom":
        _spawn(args, "IDE")
        return

    try:
        result = subprocess.run(args, capture_output=True, text=True, check=False)
    except OSError as e:
        raise LauncherError(f"Failed to run custom command: {e}") from e

    if result.returncode != 0:
        message = (
            result.stderr.strip()
            or result.stdout.strip()
            or f"Command exited with status: {result.returncode}"
        )
        logger.warning(f"Custom IDE command failed: {message}")
        raise LauncherError(message)


def open_in_file_manager(path: str) -> None:
    """Reveal ``path`` in Finder, Explorer or the desktop's file manager."""
    if sys.platform == "darwin":
        _spawn(["open", path], "Finder")
    elif sys.platform == "win32":
        _spawn(["explorer", path], "Explorer")
    else:
        _spawn(["xdg-open", path], "file manager")


def open_terminal(path: str) -> None:
    """Open a terminal window in ``path``.

    Raises:
        LauncherError: no supported terminal emulator is installed (Linux)
    """
    if sys.platform == "darwin":
        _spawn(["open", "-a", "Terminal", path], "Terminal")
    elif sys.platform == "win32":
        _spawn(["cmd", "/c", "start", "cmd", "/k", f"cd /d {path}"], "Command Prompt")
    else:
        for terminal, dir_flag in LINUX_TERMINALS.items():
            if shutil.which(terminal):
                if dir_flag:
                    _spawn([terminal, dir_flag, path], "terminal")
                else:
                    _spawn([terminal], "terminal", cwd=path)
                return
        raise LauncherError("No supported terminal emulator found")
