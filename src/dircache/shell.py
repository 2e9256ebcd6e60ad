"""Recording shell collaborator.

``ShellScript`` records the shell instructions a plan wants executed,
as a tree of ``Instruction`` values, without running anything. ``render``
turns that tree into a bash script for the CI worker.
"""

import shlex
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

ANSI_COLORS = {
    "red": "31;1",
    "green": "32;1",
    "yellow": "33;1",
}

RETRY_ATTEMPTS = 3


@dataclass
class Instruction:
    """One recorded shell instruction.

    Attributes:
        kind: Instruction kind (cmd, raw, if, fold, echo, export, mkdir, chmod)
        args: Positional arguments, e.g. the command text
        options: Keyword options such as echo, retry, assert_ or timing
        children: Nested instructions for block kinds (if, fold)
    """

    kind: str
    args: tuple = ()
    options: Dict[str, Any] = field(default_factory=dict)
    children: List["Instruction"] = field(default_factory=list)


class ShellScript:
    """Collects shell instructions in emission order.

    Block methods (``if_``, ``fold``) are context managers; instructions
    emitted inside the ``with`` body become children of the block.
    """

    def __init__(self) -> None:
        self.instructions: List[Instruction] = []
        self._stack: List[List[Instruction]] = [self.instructions]

    def _emit(self, kind: str, *args: Any, **options: Any) -> Instruction:
        instruction = Instruction(kind=kind, args=args, options=options)
        self._stack[-1].append(instruction)
        return instruction

    @contextmanager
    def _block(self, kind: str, *args: Any, **options: Any) -> Iterator[Instruction]:
        instruction = self._emit(kind, *args, **options)
        self._stack.append(instruction.children)
        try:
            yield instruction
        finally:
            self._stack.pop()

    def cmd(
        self,
        text: str,
        echo: Union[bool, str] = True,
        retry: bool = False,
        assert_: bool = True,
        timing: bool = False,
    ) -> Instruction:
        return self._emit("cmd", text, echo=echo, retry=retry, assert_=assert_, timing=timing)

    def raw(self, text: str) -> Instruction:
        return self._emit("raw", text)

    def if_(self, condition: str):
        """Run the block only when ``[ condition ]`` holds."""
        return self._block("if", condition)

    def fold(self, label: str):
        """Group the block under a collapsible log section."""
        return self._block("fold", label)

    def echo(self, text: str, ansi: Optional[str] = None) -> Instruction:
        return self._emit("echo", text, ansi=ansi)

    def export(self, name: str, value: str, echo: bool = False) -> Instruction:
        return self._emit("export", name, value, echo=echo)

    def mkdir(self, path: str, recursive: bool = False, echo: bool = True) -> Instruction:
        return self._emit("mkdir", path, recursive=recursive, echo=echo)

    def chmod(self, mode: str, path: str, assert_: bool = True, echo: bool = True) -> Instruction:
        return self._emit("chmod", mode, path, assert_=assert_, echo=echo)

    def walk(self) -> Iterator[Instruction]:
        """Iterate over every instruction, depth first."""
        yield from _walk(self.instructions)

    def find(self, kind: str) -> List[Instruction]:
        return [i for i in self.walk() if i.kind == kind]

    def to_bash(self) -> str:
        return render(self.instructions)


def _walk(instructions: List[Instruction]) -> Iterator[Instruction]:
    for instruction in instructions:
        yield instruction
        yield from _walk(instruction.children)


def _echo_line(text: str, ansi: Optional[str] = None) -> str:
    if ansi:
        code = ANSI_COLORS.get(ansi, ansi)
        colored = "\\033[" + code + "m" + text + "\\033[0m"
        return f"echo -e {shlex.quote(colored)}"
    return f"echo {shlex.quote(text)}"


def _command_lines(text: str, options: Dict[str, Any]) -> List[str]:
    lines = []
    echo = options.get("echo", True)
    if echo is True:
        lines.append(_echo_line(f"$ {text}"))
    elif echo:
        lines.append(_echo_line(str(echo)))

    line = text
    if options.get("timing"):
        line = f"time {line}"
    if options.get("retry"):
        attempts = " ".join(str(n) for n in range(1, RETRY_ATTEMPTS + 1))
        line = f"for _attempt in {attempts}; do {line} && break; done"
    if options.get("assert_", True):
        line = f"{line} || exit $?"
    lines.append(line)
    return lines


def _render(instructions: List[Instruction], depth: int) -> List[str]:
    pad = "  " * depth
    lines: List[str] = []
    for instruction in instructions:
        kind, args, opts = instruction.kind, instruction.args, instruction.options
        if kind == "cmd":
            body = _command_lines(args[0], opts)
        elif kind == "raw":
            body = [args[0]]
        elif kind == "echo":
            body = [_echo_line(args[0], opts.get("ansi"))]
        elif kind == "export":
            name, value = args
            body = [f"export {name}={value}"]
            if opts.get("echo"):
                body.insert(0, _echo_line(f"$ export {name}={value}"))
        elif kind == "mkdir":
            flag = "-p " if opts.get("recursive") else ""
            body = _command_lines(f"mkdir {flag}{args[0]}", {"echo": opts.get("echo"), "assert_": True})
        elif kind == "chmod":
            mode, path = args
            body = _command_lines(
                f"chmod {mode} {path}",
                {"echo": opts.get("echo"), "assert_": opts.get("assert_", True)},
            )
        elif kind == "if":
            lines.append(f"{pad}if [ {args[0]} ]; then")
            lines.extend(_render(instruction.children, depth + 1))
            lines.append(f"{pad}fi")
            continue
        elif kind == "fold":
            lines.append(f"{pad}echo -en 'fold:start:{args[0]}\\r'")
            lines.extend(_render(instruction.children, depth))
            lines.append(f"{pad}echo -en 'fold:end:{args[0]}\\r'")
            continue
        else:
            raise ValueError(f"Unknown instruction kind: {kind}")
        lines.extend(f"{pad}{line}" for line in body)
    return lines


def render(instructions: List[Instruction]) -> str:
    """Render recorded instructions as a bash script.

    Args:
        instructions: Top-level instructions, in emission order

    Returns:
        Script text, one statement per line
    """
    return "\n".join(_render(instructions, 0)) + "\n"
