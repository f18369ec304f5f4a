"""Application bootstrap helpers for the vocabulary trainer."""

from .runtime import StudyContext, build_study_context
from .settings import AppSettings

__all__ = ["AppSettings", "StudyContext", "build_study_context"]
