from .aipw import RefutationCheck, RefutationReport, refute_aipw

__all__ = ["RefutationCheck", "RefutationReport", "refute_aipw"]
