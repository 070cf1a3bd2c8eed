"""Tests for filter documents."""

import os

import pytest

from slnfilter_mcp.errors import MalformedFilterError
from slnfilter_mcp.filter import FilterSpec, derive_output_path, load_filter


def _write(path, content):
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestDeriveOutputPath:
    """Tests for output path derivation."""

    def test_replaces_extension(self):
        """Test the filter extension becomes .sln."""
        assert derive_output_path("C:/proj/app.slnf") == "C:/proj/app.sln"

    def test_independent_of_source_name(self, tmp_path):
        """Test output path depends only on the filter path."""
        spec = FilterSpec(
            source_path=str(tmp_path / "Everything.sln"),
            filter_path=str(tmp_path / "app.slnf"),
        )
        assert spec.output_path == str(tmp_path / "app.sln")

    def test_no_filter_path_raises(self):
        """Test output path requires a filter path."""
        with pytest.raises(ValueError):
            FilterSpec().output_path


class TestFilterSpecDefaults:
    """Tests for a fresh FilterSpec."""

    def test_defaults(self):
        """Test flags default to False and the keep list is empty."""
        spec = FilterSpec()
        assert spec.source_path is None
        assert spec.projects_to_keep == []
        assert spec.auto_resync is False
        assert spec.copy_auxiliary_files is False

    def test_add_project_collapses_duplicates(self):
        """Test adding the same name twice keeps one entry."""
        spec = FilterSpec()
        assert spec.add_project("A") is True
        assert spec.add_project("A") is False
        assert spec.projects_to_keep == ["A"]

    def test_remove_project(self):
        """Test removing entries."""
        spec = FilterSpec(projects_to_keep=["A", "B", "A"])
        assert spec.remove_project("A") is True
        assert spec.projects_to_keep == ["B"]
        assert spec.remove_project("missing") is False


class TestLoadFilter:
    """Tests for reading filter documents."""

    def test_load_full_document(self, tmp_path):
        """Test every field is read."""
        path = _write(
            tmp_path / "app.slnf",
            "<Config>\n"
            "  <SourceSLN>Everything.sln</SourceSLN>\n"
            "  <WatchForChangesOnFilteredSolution>True</WatchForChangesOnFilteredSolution>\n"
            "  <CopyReSharperFiles>false</CopyReSharperFiles>\n"
            "  <ProjectToKeep>Apps\\Web</ProjectToKeep>\n"
            "  <ProjectToKeep>Tools</ProjectToKeep>\n"
            "</Config>\n",
        )

        spec = load_filter(path)

        assert spec.filter_path == path
        assert spec.source_path == str(tmp_path / "Everything.sln")
        assert spec.auto_resync is True
        assert spec.copy_auxiliary_files is False
        assert spec.projects_to_keep == ["Apps\\Web", "Tools"]
        assert spec.output_path == str(tmp_path / "app.sln")

    def test_source_resolved_against_filter_directory(self, tmp_path, monkeypatch):
        """Test the source solution is relative to the filter, not the CWD."""
        subdir = tmp_path / "sub"
        subdir.mkdir()
        path = _write(subdir / "app.slnf", "<Config><SourceSLN>All.sln</SourceSLN></Config>")
        monkeypatch.chdir(tmp_path)

        spec = FilterSpec.load(path)

        assert spec.source_path == str(subdir / "All.sln")

    def test_source_directory_component_stripped(self, tmp_path):
        """Test only the file name of the source reference is used."""
        path = _write(
            tmp_path / "app.slnf",
            "<Config><SourceSLN>..\\elsewhere\\All.sln</SourceSLN></Config>",
        )

        spec = FilterSpec.load(path)

        assert spec.source_path == str(tmp_path / "All.sln")

    def test_optional_flags_default_false(self, tmp_path):
        """Test absent flags are False."""
        path = _write(tmp_path / "app.slnf", "<Config><SourceSLN>All.sln</SourceSLN></Config>")

        spec = FilterSpec.load(path)

        assert spec.auto_resync is False
        assert spec.copy_auxiliary_files is False
        assert spec.projects_to_keep == []

    def test_keep_entries_not_validated(self, tmp_path):
        """Test arbitrary project names are accepted at load time."""
        path = _write(
            tmp_path / "app.slnf",
            "<Config><SourceSLN>All.sln</SourceSLN>"
            "<ProjectToKeep>Does\\Not\\Exist</ProjectToKeep></Config>",
        )

        assert FilterSpec.load(path).projects_to_keep == ["Does\\Not\\Exist"]

    def test_missing_source_raises(self, tmp_path):
        """Test a document without SourceSLN is malformed."""
        path = _write(tmp_path / "app.slnf", "<Config><ProjectToKeep>A</ProjectToKeep></Config>")

        with pytest.raises(MalformedFilterError, match="SourceSLN"):
            FilterSpec.load(path)

    def test_empty_source_raises(self, tmp_path):
        """Test an empty SourceSLN is malformed."""
        path = _write(tmp_path / "app.slnf", "<Config><SourceSLN>  </SourceSLN></Config>")

        with pytest.raises(MalformedFilterError):
            FilterSpec.load(path)

    def test_wrong_root_raises(self, tmp_path):
        """Test a document without a Config root is malformed."""
        path = _write(tmp_path / "app.slnf", "<Filter><SourceSLN>All.sln</SourceSLN></Filter>")

        with pytest.raises(MalformedFilterError, match="Config"):
            FilterSpec.load(path)

    def test_invalid_xml_raises(self, tmp_path):
        """Test unparseable content is malformed."""
        path = _write(tmp_path / "app.slnf", "<Config><SourceSLN>")

        with pytest.raises(MalformedFilterError):
            FilterSpec.load(path)

    def test_invalid_flag_raises(self, tmp_path):
        """Test a flag that is not a boolean token is malformed."""
        path = _write(
            tmp_path / "app.slnf",
            "<Config><SourceSLN>All.sln</SourceSLN>"
            "<CopyReSharperFiles>yes</CopyReSharperFiles></Config>",
        )

        with pytest.raises(MalformedFilterError, match="CopyReSharperFiles") as exc_info:
            FilterSpec.load(path)
        assert exc_info.value.path == path

    def test_missing_file_raises(self, tmp_path):
        """Test a missing document raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            FilterSpec.load(str(tmp_path / "missing.slnf"))


class TestSaveFilter:
    """Tests for writing filter documents."""

    def test_round_trip(self, tmp_path):
        """Test save followed by load reproduces the filter."""
        spec = FilterSpec(
            source_path=str(tmp_path / "Everything.sln"),
            filter_path=str(tmp_path / "app.slnf"),
            projects_to_keep=["Tools", "Apps\\Web", "Core"],
            auto_resync=True,
            copy_auxiliary_files=True,
        )

        spec.save()

        assert FilterSpec.load(str(tmp_path / "app.slnf")) == spec

    def test_source_written_as_file_name(self, tmp_path):
        """Test the source reference is stored without directories."""
        spec = FilterSpec(source_path=str(tmp_path / "Everything.sln"))
        path = spec.save(str(tmp_path / "app.slnf"))

        content = open(path, encoding="utf-8").read()
        assert "<SourceSLN>Everything.sln</SourceSLN>" in content
        assert str(tmp_path) not in content

    def test_flags_written_as_text(self, tmp_path):
        """Test flags are written as True/False."""
        spec = FilterSpec(source_path=str(tmp_path / "All.sln"), auto_resync=True)
        path = spec.save(str(tmp_path / "app.slnf"))

        content = open(path, encoding="utf-8").read()
        assert "<WatchForChangesOnFilteredSolution>True</WatchForChangesOnFilteredSolution>" in content
        assert "<CopyReSharperFiles>False</CopyReSharperFiles>" in content

    def test_save_as_updates_filter_path(self, tmp_path):
        """Test saving under a new path relocates the filter."""
        spec = FilterSpec(
            source_path=str(tmp_path / "All.sln"),
            filter_path=str(tmp_path / "old.slnf"),
        )

        spec.save(str(tmp_path / "new.slnf"))

        assert spec.filter_path == str(tmp_path / "new.slnf")
        assert spec.output_path == str(tmp_path / "new.sln")
        assert os.path.exists(tmp_path / "new.slnf")
        assert not os.path.exists(tmp_path / "old.slnf")

    def test_save_without_source_raises(self, tmp_path):
        """Test a spec without source solution cannot be saved."""
        with pytest.raises(ValueError):
            FilterSpec().save(str(tmp_path / "app.slnf"))

    def test_special_characters_escaped(self, tmp_path):
        """Test project names with XML characters survive a round trip."""
        spec = FilterSpec(
            source_path=str(tmp_path / "All.sln"),
            filter_path=str(tmp_path / "app.slnf"),
            projects_to_keep=["R&D <Tools>"],
        )
        spec.save()

        assert FilterSpec.load(spec.filter_path).projects_to_keep == ["R&D <Tools>"]

    def test_to_dict(self, tmp_path):
        """Test converting a spec to dict."""
        spec = FilterSpec(
            source_path=str(tmp_path / "All.sln"),
            filter_path=str(tmp_path / "app.slnf"),
            projects_to_keep=["A"],
        )

        d = spec.to_dict()
        assert d["outputPath"] == str(tmp_path / "app.sln")
        assert d["projectsToKeep"] == ["A"]
        assert d["autoResync"] is False
