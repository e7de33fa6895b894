from __future__ import annotations


class ToolError(Exception):
    """Base pour les erreurs des outils à effets de bord."""


class CommandError(ToolError):
    """Échec d'exécution d'une commande (code retour non nul, timeout...)."""

    def __init__(self, message: str, *, command: str = "", returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class FileOpError(ToolError):
    """Échec d'une opération fichier (permissions, disque...)."""


class ShellSecurityError(CommandError):
    """Commande refusée par l'allowlist du profil."""


class FileSecurityError(FileOpError):
    """Chemin hors du workspace."""
