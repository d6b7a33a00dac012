from collections.abc import Callable
from pathlib import Path

import orjson
import pytest

from strtemplate.cli._shared import ExitCode

Run = Callable[..., int]


class TestCheckText:
    def test_clean_group(
        self, strtemplate_cli: Run, page_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = strtemplate_cli("check", str(page_file))

        assert exit_code == ExitCode.SUCCESS
        out = capsys.readouterr().out
        assert "group page: 2 templates, 0 interfaces" in out
        assert "No problems found." in out

    def test_reports_missing_interface_templates(
        self,
        strtemplate_cli: Run,
        page_file: Path,
        shop_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = strtemplate_cli("check", str(page_file), "-i", str(shop_file))

        assert exit_code == ExitCode.TEMPLATE_ERROR
        out = capsys.readouterr().out
        assert "group page: 2 templates, 1 interfaces" in out
        assert "Problem" in out
        assert "[price]" in out

    def test_reports_parse_errors(
        self, strtemplate_cli: Run, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "broken.stg"
        path.write_text('group broken;\nt() ::= "<if(x)>"\n', encoding="utf-8")

        exit_code = strtemplate_cli("check", str(path))

        assert exit_code == ExitCode.TEMPLATE_ERROR
        assert "problem parsing" in capsys.readouterr().out

    def test_missing_file(
        self, strtemplate_cli: Run, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = strtemplate_cli("check", str(tmp_path / "absent.stg"))

        assert exit_code == ExitCode.NOT_FOUND
        assert "File not found" in capsys.readouterr().err


class TestCheckJson:
    def test_clean_group(
        self, strtemplate_cli: Run, page_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = strtemplate_cli("check", str(page_file), "--format", "json")

        assert exit_code == ExitCode.SUCCESS
        assert orjson.loads(capsys.readouterr().out) == {
            "group": "page",
            "super_group": None,
            "interfaces": [],
            "templates": ["footer", "main"],
            "problems": [],
            "ok": True,
        }

    def test_interface_problems(
        self,
        strtemplate_cli: Run,
        page_file: Path,
        shop_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = strtemplate_cli("check", str(page_file), "-i", str(shop_file), "-f", "json")

        assert exit_code == ExitCode.TEMPLATE_ERROR
        report = orjson.loads(capsys.readouterr().out)
        assert report["ok"] is False
        assert report["interfaces"] == ["shop"]
        assert report["problems"] == [
            "group page does not satisfy interface shop: missing templates [price]"
        ]

    def test_declared_interface_is_checked_once(
        self,
        strtemplate_cli: Run,
        shop_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        path = tmp_path / "store.stg"
        path.write_text(
            'group store implements shop;\nmain(title, items) ::= "<title>"\n', encoding="utf-8"
        )

        exit_code = strtemplate_cli("check", str(path), "-i", str(shop_file), "-f", "json")

        assert exit_code == ExitCode.TEMPLATE_ERROR
        report = orjson.loads(capsys.readouterr().out)
        assert report["interfaces"] == ["shop"]
        assert report["problems"] == [
            "group store does not satisfy interface shop: missing templates [price]"
        ]

    def test_super_group_from_group_option(
        self,
        strtemplate_cli: Run,
        page_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        sub = tmp_path / "sub.stg"
        sub.write_text('group sub : page;\nextra() ::= "x"\n', encoding="utf-8")

        exit_code = strtemplate_cli("check", str(sub), "-g", str(page_file), "-f", "json")

        assert exit_code == ExitCode.SUCCESS
        report = orjson.loads(capsys.readouterr().out)
        assert report["super_group"] == "page"
        assert report["templates"] == ["extra"]
