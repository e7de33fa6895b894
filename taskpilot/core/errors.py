from __future__ import annotations


class EngineError(Exception):
    """Base des erreurs du moteur de plan."""


class SynthesisError(EngineError):
    """Aucune étape exploitable n'a pu être extraite de la réponse du planificateur."""


class ExecutorError(EngineError):
    """Le LLM exécutant n'a rien renvoyé, ou le transport a échoué."""


class StepIndexError(EngineError, IndexError):
    """Mise à jour de statut sur un indice d'étape hors plan (défaut de programmation)."""


class PlanCancelled(EngineError):
    """Annulation demandée pendant l'exécution (kill-switch)."""
