"""Pytest fixtures for slnfilter-mcp tests."""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from slnfilter_mcp.solution import Project, SolutionFile, parse_solution_text  # noqa: E402

CSHARP_TYPE = "{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}"
FOLDER_TYPE = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"

APPS = "{11111111-1111-1111-1111-111111111111}"
WEB = "{22222222-2222-2222-2222-222222222222}"
CORE = "{33333333-3333-3333-3333-333333333333}"
COMMON = "{44444444-4444-4444-4444-444444444444}"
TOOLS = "{55555555-5555-5555-5555-555555555555}"
CLI = "{66666666-6666-6666-6666-666666666666}"
UNRELATED = "{77777777-7777-7777-7777-777777777777}"

# Apps\Web -> Core -> Common, Tools\Cli -> Common, Unrelated
SAMPLE_SOLUTION = (
    "\n"
    "Microsoft Visual Studio Solution File, Format Version 12.00\n"
    "# Visual Studio Version 17\n"
    "VisualStudioVersion = 17.0.31903.59\n"
    "MinimumVisualStudioVersion = 10.0.40219.1\n"
    f'Project("{FOLDER_TYPE}") = "Apps", "Apps", "{APPS}"\n'
    "EndProject\n"
    f'Project("{CSHARP_TYPE}") = "Web", "Apps\\Web\\Web.csproj", "{WEB}"\n'
    "\tProjectSection(ProjectDependencies) = postProject\n"
    f"\t\t{CORE} = {CORE}\n"
    "\tEndProjectSection\n"
    "EndProject\n"
    f'Project("{CSHARP_TYPE}") = "Core", "Core\\Core.csproj", "{CORE}"\n'
    "\tProjectSection(ProjectDependencies) = postProject\n"
    f"\t\t{COMMON} = {COMMON}\n"
    "\tEndProjectSection\n"
    "EndProject\n"
    f'Project("{CSHARP_TYPE}") = "Common", "Common\\Common.csproj", "{COMMON}"\n'
    "EndProject\n"
    f'Project("{FOLDER_TYPE}") = "Tools", "Tools", "{TOOLS}"\n'
    "\tProjectSection(SolutionItems) = preProject\n"
    "\t\tbuild.ps1 = build.ps1\n"
    "\tEndProjectSection\n"
    "EndProject\n"
    f'Project("{CSHARP_TYPE}") = "Cli", "Tools\\Cli\\Cli.csproj", "{CLI}"\n'
    "\tProjectSection(ProjectDependencies) = postProject\n"
    f"\t\t{COMMON} = {COMMON}\n"
    "\tEndProjectSection\n"
    "EndProject\n"
    f'Project("{CSHARP_TYPE}") = "Unrelated", "Unrelated\\Unrelated.csproj", "{UNRELATED}"\n'
    "EndProject\n"
    "Global\n"
    "\tGlobalSection(SolutionConfigurationPlatforms) = preSolution\n"
    "\t\tDebug|Any CPU = Debug|Any CPU\n"
    "\t\tRelease|Any CPU = Release|Any CPU\n"
    "\tEndGlobalSection\n"
    "\tGlobalSection(ProjectConfigurationPlatforms) = postSolution\n"
    f"\t\t{WEB}.Debug|Any CPU.ActiveCfg = Debug|Any CPU\n"
    f"\t\t{WEB}.Debug|Any CPU.Build.0 = Debug|Any CPU\n"
    f"\t\t{UNRELATED}.Debug|Any CPU.ActiveCfg = Debug|Any CPU\n"
    "\tEndGlobalSection\n"
    "\tGlobalSection(SolutionProperties) = preSolution\n"
    "\t\tHideSolutionNode = FALSE\n"
    "\tEndGlobalSection\n"
    "\tGlobalSection(NestedProjects) = preSolution\n"
    f"\t\t{WEB} = {APPS}\n"
    f"\t\t{CLI} = {TOOLS}\n"
    "\tEndGlobalSection\n"
    "EndGlobal\n"
)


def make_project(name: str, guid: str, dependencies=(), parent: str | None = None) -> Project:
    """Build a C# project with the given dependency GUIDs."""
    return Project(
        guid=guid,
        type_guid=CSHARP_TYPE,
        name=name,
        relative_path=f"{name}\\{name}.csproj",
        parent_guid=parent,
        dependency_guids=list(dependencies),
    )


def make_guid(n: int) -> str:
    """Deterministic GUID for generated graphs."""
    return "{%08X-0000-0000-0000-000000000000}" % n


@pytest.fixture
def sample_solution_text() -> str:
    """Sample solution file content."""
    return SAMPLE_SOLUTION


@pytest.fixture
def sample_solution(tmp_path) -> SolutionFile:
    """Parsed sample solution."""
    return parse_solution_text(SAMPLE_SOLUTION, str(tmp_path / "Everything.sln"))


@pytest.fixture
def solution_dir(tmp_path):
    """Directory holding Everything.sln."""
    (tmp_path / "Everything.sln").write_text(SAMPLE_SOLUTION, encoding="utf-8")
    return tmp_path
