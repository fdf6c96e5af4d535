"""Workspace graph: entities and the in-memory provider."""

from monoguard.graph.model import Dependency, ReportedViolation, Resolution, Workspace
from monoguard.graph.project import ROOT_CWD, Project

__all__ = [
    "ROOT_CWD",
    "Dependency",
    "Project",
    "ReportedViolation",
    "Resolution",
    "Workspace",
]
