"""Solution file model, reader/writer and structural diff."""

from .diff import Difference, DifferenceKind, apply_differences, diff_solutions
from .io import format_solution, parse_solution, parse_solution_text, write_solution
from .model import SOLUTION_FOLDER_TYPE_GUID, Project, Section, SolutionFile

__all__ = [
    "SolutionFile",
    "Project",
    "Section",
    "SOLUTION_FOLDER_TYPE_GUID",
    "parse_solution",
    "parse_solution_text",
    "format_solution",
    "write_solution",
    "Difference",
    "DifferenceKind",
    "diff_solutions",
    "apply_differences",
]
