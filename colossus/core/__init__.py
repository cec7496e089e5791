from .font_scale import FontScaleController, ZoomState
from .input_actions import KeyChord, TerminalAction, dispatch_button, dispatch_key
from .launch_args import default_shell, resolve_command, resolve_working_directory
from .paths import format_dropped_paths, path_from_uri, shell_quote
from .session import LaunchSpec, SessionLauncher, SpawnOutcome, spec_from_argv, window_title

__all__ = [
    "FontScaleController",
    "KeyChord",
    "LaunchSpec",
    "SessionLauncher",
    "SpawnOutcome",
    "TerminalAction",
    "ZoomState",
    "default_shell",
    "dispatch_button",
    "dispatch_key",
    "format_dropped_paths",
    "path_from_uri",
    "resolve_command",
    "resolve_working_directory",
    "shell_quote",
    "spec_from_argv",
    "window_title",
]
