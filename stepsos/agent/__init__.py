from .narrator import Narrator, local_step_summary

__all__ = ["Narrator", "local_step_summary"]
