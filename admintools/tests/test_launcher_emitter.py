"""Tests for the launcher_emitter module."""
from __future__ import annotations

# SPDX-License-Identifier: MIT

from pathlib import Path

import pytest

from admintools import launcher_emitter
from admintools.launcher_emitter import (
    BLANK_LINE,
    SELF_DELETE_TRAILER,
    ConversionOptions,
    convert,
)


def _fixed_name(suffix: str) -> str:
    return "launcher-fixed" + suffix


def _artifact_lines(path: Path) -> list[str]:
    return path.read_bytes().decode("utf-8").split("\r\n")[:-1]


def _body(lines: list[str]) -> list[str]:
    start = lines.index("(") + 1
    end = next(i for i, line in enumerate(lines) if line.startswith(") > "))
    return lines[start:end]


def test_escape_line_handles_every_meta_character() -> None:
    escaped = launcher_emitter.escape_line('a^b|c>d<e%f&g(h)i"j')

    assert escaped == 'a^^b^|c^>d^<e%%f^&g^(h^)i^"j'


def test_escape_line_does_not_double_escape_inserted_carets() -> None:
    assert launcher_emitter.escape_line("&") == "^&"
    assert launcher_emitter.escape_line("^&") == "^^^&"


def test_render_line_emits_blank_instruction_for_whitespace() -> None:
    assert launcher_emitter.render_line("") == BLANK_LINE
    assert launcher_emitter.render_line("   \t") == BLANK_LINE
    assert launcher_emitter.render_line("Get-Date") == "echo Get-Date"


def test_convert_concrete_scenario(tmp_path: Path) -> None:
    source = tmp_path / "greet.ps1"
    source.write_text('Write-Host "Hi & Bye"\n\n', encoding="utf-8")

    result = convert(source, options=ConversionOptions(), script_name_factory=_fixed_name)

    assert result
    assert result.output_path == tmp_path / "greet.ps1.bat"
    assert result.body_lines == 2
    body = _body(_artifact_lines(result.output_path))
    assert body == ['echo Write-Host ^"Hi ^& Bye^"', "echo."]


def test_body_line_count_matches_source(tmp_path: Path) -> None:
    source_lines = ["param($Name)", "", "  ", "if ($Name) {", '  "Hello $Name" | Out-Host', "}"]
    source = tmp_path / "script.ps1"
    source.write_text("\n".join(source_lines) + "\n", encoding="utf-8")

    result = convert(source, tmp_path / "out.bat", script_name_factory=_fixed_name)

    body = _body(_artifact_lines(tmp_path / "out.bat"))
    assert len(body) == len(source_lines) == result.body_lines
    assert body[1] == body[2] == BLANK_LINE
    assert body[4] == 'echo   ^"Hello $Name^" ^| Out-Host'


def test_source_without_trailing_newline_keeps_last_line(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("first\r\nlast", encoding="utf-8")

    convert(source, tmp_path / "out.bat", script_name_factory=_fixed_name)

    assert _body(_artifact_lines(tmp_path / "out.bat")) == ["echo first", "echo last"]


def test_preamble_and_default_footer(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")

    convert(source, tmp_path / "out.bat", script_name_factory=_fixed_name)
    lines = _artifact_lines(tmp_path / "out.bat")

    assert lines[:4] == ["@echo off", "color 07", "cls", 'cd /d "%~dp0"']
    assert lines[4] == 'set "LAUNCHER_SCRIPT=%TEMP%\\launcher-fixed.ps1"'
    assert lines[-2] == (
        'powershell -NoProfile -ExecutionPolicy Bypass -File "%LAUNCHER_SCRIPT%"'
    )
    assert lines[-1] == 'del "%LAUNCHER_SCRIPT%" >nul 2>&1'
    assert "net session >nul 2>&1" not in lines
    assert SELF_DELETE_TRAILER not in lines


def test_admin_check_and_self_delete_blocks(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")
    options = ConversionOptions(admin_check=True, self_delete=True)

    convert(source, tmp_path / "out.bat", options, script_name_factory=_fixed_name)
    lines = _artifact_lines(tmp_path / "out.bat")

    assert "net session >nul 2>&1" in lines
    assert lines.index("net session >nul 2>&1") < lines.index("(")
    assert lines[-1] == SELF_DELETE_TRAILER


def test_interpreter_flags(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")
    options = ConversionOptions(hide_terminal=True, extra_interpreter_args="-Verbose -Name x")

    convert(source, tmp_path / "out.bat", options, script_name_factory=_fixed_name)
    lines = _artifact_lines(tmp_path / "out.bat")

    assert lines[-2] == (
        "powershell -NoProfile -ExecutionPolicy Bypass -WindowStyle Hidden "
        '-File "%LAUNCHER_SCRIPT%" -Verbose -Name x'
    )


def test_repeated_conversion_differs_only_in_temp_name(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("echo (1)\n", encoding="utf-8")

    convert(source, tmp_path / "a.bat")
    convert(source, tmp_path / "b.bat")
    first = _artifact_lines(tmp_path / "a.bat")
    second = _artifact_lines(tmp_path / "b.bat")

    differing = [i for i, (a, b) in enumerate(zip(first, second)) if a != b]
    assert len(first) == len(second)
    assert len(differing) == 1
    assert first[differing[0]].startswith('set "LAUNCHER_SCRIPT=%TEMP%\\launcher-')


def test_random_script_name_uses_three_tokens() -> None:
    name = launcher_emitter.random_script_name(".ps1")

    assert name.startswith("launcher-")
    assert name.endswith(".ps1")
    assert len(name[len("launcher-") : -len(".ps1")].split("-")) == 3


def test_missing_source_writes_nothing(tmp_path: Path) -> None:
    output = tmp_path / "out.bat"

    result = convert(tmp_path / "missing.ps1", output)

    assert not result
    assert "does not exist" in (result.error or "")
    assert not output.exists()


def test_write_launcher_raises_for_missing_source(tmp_path: Path) -> None:
    with pytest.raises(launcher_emitter.SourceScriptMissingError):
        launcher_emitter.write_launcher(tmp_path / "missing.ps1")


def test_unwritable_output_reports_failure(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")

    result = convert(source, tmp_path / "no-such-dir" / "out.bat")

    assert not result
    assert result.error


def test_main_uses_default_output_and_flags(tmp_path: Path, capsys) -> None:
    source = tmp_path / "deploy.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")

    exit_code = launcher_emitter.main(["--input", str(source), "--admin", "--self-delete"])

    assert exit_code == 0
    output = tmp_path / "deploy.ps1.bat"
    assert capsys.readouterr().out.strip() == str(output)
    lines = _artifact_lines(output)
    assert "net session >nul 2>&1" in lines
    assert lines[-1] == SELF_DELETE_TRAILER


def test_main_missing_input_returns_non_zero(tmp_path: Path) -> None:
    exit_code = launcher_emitter.main(["--input", str(tmp_path / "missing.ps1")])

    assert exit_code != 0
    assert not (tmp_path / "missing.ps1.bat").exists()


def test_interpreter_can_come_from_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv(launcher_emitter.INTERPRETER_ENV_VAR, "pwsh")
    args = launcher_emitter.parse_args(["--input", str(tmp_path / "x.ps1")])

    options = launcher_emitter.options_from_args(args)

    assert options.interpreter == "pwsh"


def test_build_artifact_matches_written_launcher(tmp_path: Path) -> None:
    source_lines = ["$x = 50%", "", 'Start-Process "a.exe" -ArgumentList "/q"']
    source = tmp_path / "script.ps1"
    source.write_text("\n".join(source_lines) + "\n", encoding="utf-8")
    options = ConversionOptions(admin_check=True, hide_terminal=True)

    convert(source, tmp_path / "out.bat", options, script_name_factory=_fixed_name)
    rendered = launcher_emitter.build_artifact(
        source_lines, options, script_name_factory=_fixed_name
    )

    assert rendered.endswith("\r\n")
    assert rendered.encode("utf-8") == (tmp_path / "out.bat").read_bytes()
    assert "echo $x = 50%%\r\n" in rendered


def test_undecodable_source_fails_without_output(tmp_path: Path) -> None:
    source = tmp_path / "ansi.ps1"
    source.write_bytes('Write-Host "Café"\r\n'.encode("cp1252"))
    output = tmp_path / "ansi.bat"

    result = convert(source, output)

    assert not result
    assert "utf-8" in (result.error or "")
    assert not output.exists()
    assert list(tmp_path.iterdir()) == [source]


def test_ansi_source_round_trips_with_matching_encoding(tmp_path: Path) -> None:
    source = tmp_path / "ansi.ps1"
    source.write_bytes('Write-Host "Café"\r\n'.encode("cp1252"))
    output = tmp_path / "ansi.bat"

    result = convert(
        source,
        output,
        ConversionOptions(encoding="cp1252"),
        script_name_factory=_fixed_name,
    )

    assert result
    assert b'\r\necho Write-Host ^"Caf\xe9^"\r\n' in output.read_bytes()


def test_unreadable_source_is_a_source_error(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "locked.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")
    output = tmp_path / "locked.bat"
    real_open = Path.open

    def _open(self, *args, **kwargs):
        if self == source:
            raise PermissionError("access denied")
        return real_open(self, *args, **kwargs)

    monkeypatch.setattr(Path, "open", _open)

    with pytest.raises(launcher_emitter.SourceScriptError, match="Unable to open source"):
        launcher_emitter.write_launcher(source, output)
    assert not output.exists()


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("off", "echo(off"),
        ("  On ", "echo(  On "),
        ("/?", "echo(/?"),
        ("offset", "echo offset"),
        ("echo off", "echo echo off"),
    ],
)
def test_echo_toggle_words_are_printed_literally(line: str, expected: str) -> None:
    assert launcher_emitter.render_line(line) == expected


def test_only_powershell_hosts_are_accepted() -> None:
    assert ConversionOptions(interpreter="pwsh").interpreter == "pwsh"
    assert ConversionOptions(interpreter="C:\\Program Files\\PowerShell\\7\\pwsh.exe")
    with pytest.raises(launcher_emitter.LauncherError, match="Unsupported interpreter"):
        ConversionOptions(interpreter="python")
    with pytest.raises(launcher_emitter.LauncherError, match="Unknown encoding"):
        ConversionOptions(encoding="no-such-codec")


def test_main_rejects_non_powershell_interpreter(tmp_path: Path) -> None:
    source = tmp_path / "script.ps1"
    source.write_text("Get-Date\n", encoding="utf-8")

    exit_code = launcher_emitter.main(["--input", str(source), "--interpreter", "bash"])

    assert exit_code == 64
    assert not (tmp_path / "script.ps1.bat").exists()
