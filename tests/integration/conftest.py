from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from strtemplate.cli import create_app

PAGE = """group page;
main(title, items) ::= <<
# <title>
<items:{it|- <it>}; separator="\\n">
>>
footer() ::= "bye"
"""

SHOP = """interface shop;
main(title, items);
price(amount);
"""


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def strtemplate_cli(console: Console) -> Callable[..., int]:
    """Create CLI app for testing that returns the exit code.

    Output written with ``print`` and to the error console is left for
    ``capsys``.
    """

    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        """Run CLI app and return exit code (0 if no SystemExit)."""

        try:
            app(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def page_file(tmp_path: Path) -> Path:
    path = tmp_path / "page.stg"
    path.write_text(PAGE, encoding="utf-8")
    return path


@pytest.fixture
def shop_file(tmp_path: Path) -> Path:
    path = tmp_path / "shop.sti"
    path.write_text(SHOP, encoding="utf-8")
    return path
