"""Interactive shape checker, powered by prompt_toolkit."""

from __future__ import annotations

import re
import sys
import traceback
from dataclasses import dataclass, field
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .eval.common import Options
from .lexer_rd import LexError, tokenize
from .lower import ShapeEnv
from .repl_highlight import ShapeLexer
from .runner import repl_eval
from .token_types import TT
from .types import ShapeError
from .utils import debug_py_trace_enabled, options_from_env, set_debug_py_trace

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/defs": ("List the types defined so far", ""),
    "/explain": ("Toggle mismatch details for checks", "[on|off]"),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Forget every definition", ""),
}

_DEPTH_OPEN = {TT.LPAR, TT.LSQB, TT.LBRACE}
_DEPTH_CLOSE = {TT.RPAR, TT.RSQB, TT.RBRACE}

_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


@dataclass
class ReplState:
    env: ShapeEnv = field(default_factory=ShapeEnv)
    options: Options = field(default_factory=options_from_env)
    explain: bool = False


def _bracket_depth(text: str) -> int:
    try:
        tokens = tokenize(text)
    except LexError:
        return 0

    depth = 0
    for tok in tokens:
        if tok.type in _DEPTH_OPEN:
            depth += 1
        elif tok.type in _DEPTH_CLOSE:
            depth = max(depth - 1, 0)

    return depth


def _is_incomplete(text: str) -> bool:
    """Return True while *text* still has an unclosed bracket."""
    return _bracket_depth(text) > 0


def _parse_switch(arg: str, current: bool) -> Optional[bool]:
    """on/off argument, or toggle when empty. None means the argument was invalid."""
    if arg.lower() in _ON:
        return True
    if arg.lower() in _OFF:
        return False
    if arg == "":
        return not current
    return None


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, state: ReplState) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/defs":
        names = state.env.names()
        if not names:
            print("No definitions.")
        for name in names:
            print(f"type {name} = {state.env.get(name).target!r}")
        return True

    if cmd == "/explain":
        switch = _parse_switch(arg, state.explain)
        if switch is None:
            print("Usage: /explain [on|off]", file=sys.stderr)
            return True

        state.explain = switch
        print(f"Explain: {'on' if switch else 'off'}")
        return True

    if cmd == "/py-traceback":
        switch = _parse_switch(arg, debug_py_trace_enabled())
        if switch is None:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        set_debug_py_trace(switch)
        print(f"Python traceback: {'on' if debug_py_trace_enabled() else 'off'}")
        return True

    if cmd == "/reset":
        state.env = ShapeEnv()
        print("Environment reset.")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    state = ReplState()

    history = InMemoryHistory()
    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        # Single line with balanced brackets => accept.
        if "\n" not in text:
            if _is_incomplete(text):
                buf.insert_text("\n    ")
                return

            buf.validate_and_handle()
            return

        # Multiline: an empty last line submits.
        lines = text.split("\n")
        if lines[-1].strip() == "":
            buf.text = "\n".join(lines[:-1])
            buf.cursor_position = len(buf.text)
            buf.validate_and_handle()
            return

        indent = "    " if _is_incomplete(text) else ""
        buf.insert_text("\n" + indent)

    session: PromptSession[str] = PromptSession(
        history=history,
        lexer=ShapeLexer(),
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("exactshape repl. Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, state):
            continue

        try:
            lines = repl_eval(text, state.env, state.options, state.explain)
        except ShapeError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                traceback.print_exc()
            continue

        for line in lines:
            print(line)


if __name__ == "__main__":
    repl()
