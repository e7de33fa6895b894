"""
Lecture des blocs d'action dans la réponse du LLM exécutant.

Commande :
    $$$ COMMAND
    <une ou plusieurs lignes shell>
    $$$ END

Fichier (bloc ``` dont la première ligne déclare la cible) :
    ```python
    File: src/app.py
    <contenu>
    ```

Règles :
  - un bloc non terminé est ignoré ;
  - un bloc de commande vide est ignoré ;
  - un nouveau `$$$ COMMAND` avant `$$$ END` abandonne le bloc ouvert ;
  - les marqueurs de commande à l'intérieur d'un bloc fichier font partie du
    contenu du fichier ;
  - une clôture doit être une ligne de backticks seuls, au moins aussi longue
    que l'ouverture : ```` ouvre un bloc pouvant contenir des ``` imbriqués.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import List, Optional

from .types import FileOperation

COMMAND_START = "$$$ COMMAND"
COMMAND_END = "$$$ END"
FILE_PREFIX = "File:"

_FENCE_OPEN_RE = re.compile(r"^(`{3,})\s*([\w.+-]*)\s*$")
# "$$$ END" seul ou suivi d'un suffixe ("$$$ END %%%"), pas "$$$ ENDING"
_COMMAND_END_RE = re.compile(rf"^{re.escape(COMMAND_END)}(?:\s|$)")


@dataclass
class ParsedResponse:
    commands: List[str] = field(default_factory=list)
    files: List[FileOperation] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.commands and not self.files


def _is_command_start(line: str) -> bool:
    return line.strip() == COMMAND_START


def _is_command_end(line: str) -> bool:
    return _COMMAND_END_RE.match(line.strip()) is not None


def _closes(line: str, fence: str) -> bool:
    s = line.strip()
    return len(s) >= len(fence) and set(s) == {"`"}


def _file_target(line: str) -> Optional[str]:
    s = line.strip()
    if not s.startswith(FILE_PREFIX):
        return None
    path = s[len(FILE_PREFIX):].strip()
    return path or None


def parse_response(text: str) -> ParsedResponse:
    out = ParsedResponse()
    if not text:
        return out
    lines = text.replace("\r\n", "\n").split("\n")

    i = 0
    n = len(lines)
    cmd_buf: Optional[List[str]] = None
    plain_fence: Optional[str] = None
    while i < n:
        line = lines[i]

        if cmd_buf is None and plain_fence is not None and _closes(line, plain_fence):
            plain_fence = None
            i += 1
            continue

        if cmd_buf is not None:
            if _is_command_end(line):
                command = "\n".join(cmd_buf).strip()
                if command:
                    out.commands.append(command)
                cmd_buf = None
            elif _is_command_start(line):
                cmd_buf = []
            else:
                cmd_buf.append(line)
            i += 1
            continue

        if _is_command_start(line):
            cmd_buf = []
            i += 1
            continue

        m = _FENCE_OPEN_RE.match(line.strip()) if plain_fence is None else None
        if m:
            fence = m.group(1)
            target = _file_target(lines[i + 1]) if i + 1 < n else None
            if target is None:
                # bloc ordinaire : on continue la lecture dedans (commandes incluses)
                plain_fence = fence
                i += 1
                continue
            # bloc fichier : contenu verbatim jusqu'à la clôture
            j = i + 2
            body: List[str] = []
            closed = False
            while j < n:
                if _closes(lines[j], fence):
                    closed = True
                    break
                body.append(lines[j])
                j += 1
            if closed:
                content = "\n".join(body)
                if content and not content.endswith("\n"):
                    content += "\n"
                out.files.append(FileOperation(path=target, content=content))
                i = j + 1
            else:
                i = n
            continue

        i += 1
    return out


def extract_commands(text: str) -> List[str]:
    return parse_response(text).commands


def extract_file_operations(text: str) -> List[FileOperation]:
    return parse_response(text).files
