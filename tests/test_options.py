"""Tests for command-line parsing (``cyphersh.cli.options``)."""

from __future__ import annotations

from pathlib import Path

import pytest

from cyphersh.cli.options import (
    HelpRequested,
    ParsedArguments,
    VersionRequested,
    format_help,
    parse_options,
)
from cyphersh.core.models import (
    DEFAULT_PIPELINE_MAX,
    DEFAULT_SOURCE_MAX_DEPTH,
    MAX_FILE_IO_ARGS,
    FileIoKind,
)
from cyphersh.exceptions import UsageError
from cyphersh.utils.paths import default_history_file


def _parse(*argv: str, tty: bool = True) -> ParsedArguments:
    return parse_options(list(argv), tty_available=tty)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

class TestDefaults:
    def test_no_arguments(self) -> None:
        parsed = _parse()
        options = parsed.options
        assert options.target is None
        assert options.pipeline_max == DEFAULT_PIPELINE_MAX
        assert options.source_max_depth == DEFAULT_SOURCE_MAX_DEPTH
        assert options.colorize is None
        assert options.trust_known_hosts is True
        assert options.verbosity == 0
        assert not parsed.queue

    def test_history_defaults_to_dot_dir(self) -> None:
        assert _parse().options.history_file == default_history_file()

    def test_no_history_disables_history(self) -> None:
        assert _parse("--no-history").options.history_file is None

    def test_explicit_history_file(self) -> None:
        assert _parse("--history-file", "/tmp/h").options.history_file == Path("/tmp/h")

    def test_empty_history_file_disables_history(self) -> None:
        assert _parse("--history-file=").options.history_file is None

    def test_no_history_after_history_file_wins(self) -> None:
        assert _parse("--history-file", "x", "--no-history").options.history_file is None

    def test_history_file_after_no_history_wins(self) -> None:
        assert _parse("--no-history", "--history-file", "x").options.history_file == Path("x")


# ---------------------------------------------------------------------------
# Informational flags
# ---------------------------------------------------------------------------

class TestInformationalFlags:
    def test_help_raises(self) -> None:
        with pytest.raises(HelpRequested):
            _parse("-h")

    def test_help_wins_over_later_invalid_value(self) -> None:
        with pytest.raises(HelpRequested):
            _parse("--help", "--pipeline-max", "0")

    def test_invalid_value_before_help_is_reported(self) -> None:
        with pytest.raises(UsageError):
            _parse("--pipeline-max", "0", "--help")

    def test_version_raises(self) -> None:
        with pytest.raises(VersionRequested):
            _parse("--version")

    def test_help_text_lists_options(self) -> None:
        text = format_help()
        for flag in ("--history-file", "--no-history", "--colorize", "--ca-file", "--ca-directory",
                     "--insecure", "--non-interactive", "--known-hosts", "--no-known-hosts",
                     "--pipeline-max", "--source", "--source-max-depth", "--output", "--version"):
            assert flag in text


# ---------------------------------------------------------------------------
# Numeric options
# ---------------------------------------------------------------------------

class TestNumericOptions:
    def test_pipeline_max_accepted(self) -> None:
        assert _parse("--pipeline-max", "5").options.pipeline_max == 5

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "", "2.5"])
    def test_pipeline_max_rejected(self, value: str) -> None:
        with pytest.raises(UsageError, match=f"Invalid pipeline-max '{value}'"):
            _parse("--pipeline-max", value)

    def test_source_max_depth_accepted(self) -> None:
        assert _parse("--source-max-depth", "3").options.source_max_depth == 3

    @pytest.mark.parametrize("value", ["0", "-5", "deep"])
    def test_source_max_depth_rejected(self, value: str) -> None:
        with pytest.raises(UsageError, match=f"Invalid source-max-depth '{value}'"):
            _parse("--source-max-depth", value)

    def test_last_value_wins(self) -> None:
        assert _parse("--pipeline-max", "3", "--pipeline-max", "7").options.pipeline_max == 7


# ---------------------------------------------------------------------------
# Password prompt and terminal
# ---------------------------------------------------------------------------

class TestPasswordPrompt:
    def test_prompt_with_tty(self) -> None:
        assert _parse("-P").options.password_prompt is True

    def test_prompt_without_tty_fails(self) -> None:
        with pytest.raises(UsageError, match="Cannot prompt for a password without a tty"):
            _parse("-P", tty=False)

    def test_non_interactive_before_prompt_fails(self) -> None:
        with pytest.raises(UsageError, match="without a tty"):
            _parse("--non-interactive", "-P")

    def test_prompt_before_non_interactive_is_accepted(self) -> None:
        options = _parse("-P", "--non-interactive").options
        assert options.password_prompt is True
        assert options.non_interactive is True


# ---------------------------------------------------------------------------
# File IO queue
# ---------------------------------------------------------------------------

class TestFileIoQueue:
    def test_order_is_preserved(self) -> None:
        queue = _parse("-i", "s1", "-o", "o1", "--source", "s2", "--output", "o2", "-i", "s3").queue
        assert [(r.kind, r.path) for r in queue] == [
            (FileIoKind.SOURCE, Path("s1")),
            (FileIoKind.REDIRECT, Path("o1")),
            (FileIoKind.SOURCE, Path("s2")),
            (FileIoKind.REDIRECT, Path("o2")),
            (FileIoKind.SOURCE, Path("s3")),
        ]

    def test_order_kept_across_other_options(self) -> None:
        queue = _parse("-i", "a", "--insecure", "-o", "b", "-v", "-i", "c").queue
        assert [r.path.name for r in queue] == ["a", "b", "c"]

    def test_trailing_redirect_fails(self) -> None:
        with pytest.raises(UsageError, match="--output/-o must be followed by --source/-i"):
            _parse("-i", "s1", "-o", "o1")

    def test_lone_redirect_fails(self) -> None:
        with pytest.raises(UsageError, match="must be followed by"):
            _parse("-o", "a.csv")

    def test_limit_is_accepted(self) -> None:
        argv = [arg for n in range(MAX_FILE_IO_ARGS) for arg in ("-i", f"f{n}")]
        assert len(_parse(*argv).queue) == MAX_FILE_IO_ARGS

    def test_one_over_limit_fails(self) -> None:
        argv = [arg for n in range(MAX_FILE_IO_ARGS + 1) for arg in ("-i", f"f{n}")]
        with pytest.raises(UsageError, match="Too many --source and/or --output args"):
            _parse(*argv)

    def test_missing_file_argument_fails(self) -> None:
        with pytest.raises(UsageError):
            _parse("-i")


# ---------------------------------------------------------------------------
# Connection options
# ---------------------------------------------------------------------------

class TestConnectionOptions:
    def test_target(self) -> None:
        assert _parse("bolt://db:7687").options.target == "bolt://db:7687"

    def test_target_among_options(self) -> None:
        options = _parse("-u", "alice", "db.example.com", "--insecure").options
        assert options.target == "db.example.com"
        assert options.username == "alice"
        assert options.insecure is True

    def test_second_target_fails(self) -> None:
        with pytest.raises(UsageError, match="unexpected argument 'other'"):
            _parse("db", "other")

    def test_ca_file_last_write_wins(self) -> None:
        assert _parse("--ca-file", "a.pem", "--ca-file", "b.pem").options.ca_file == "b.pem"

    def test_credentials(self) -> None:
        options = _parse("--username", "bob", "-p", "pw").options
        assert (options.username, options.password) == ("bob", "pw")

    def test_known_hosts(self) -> None:
        options = _parse("--known-hosts", "/tmp/kh", "--no-known-hosts").options
        assert options.known_hosts_file == "/tmp/kh"
        assert options.trust_known_hosts is False

    def test_unknown_option_fails(self) -> None:
        with pytest.raises(UsageError):
            _parse("--bogus")


# ---------------------------------------------------------------------------
# Output options
# ---------------------------------------------------------------------------

class TestOutputOptions:
    @pytest.mark.parametrize(
        ("argv", "expected"),
        [
            (["--colorize"], True),
            (["--colourise"], True),
            (["--no-colorize"], False),
            (["--no-colourise"], False),
            (["--colorize", "--no-colourise"], False),
            (["--no-colorize", "--colorize"], True),
        ],
    )
    def test_colorize_last_write_wins(self, argv: list[str], expected: bool) -> None:
        assert _parse(*argv).options.colorize is expected

    def test_verbosity_counts(self) -> None:
        assert _parse("-v", "-v", "--verbose").options.verbosity == 3
        assert _parse("-vv").options.verbosity == 2
