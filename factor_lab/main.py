from __future__ import annotations

import typer

from factor_lab.apps.research.cli import app as research_cli_app

"""
ルート集約Typer。
例: python -m factor_lab.main research plan --n-rows 9 --initial 6
"""

app = typer.Typer(help="factor-lab root CLI", no_args_is_help=True)

# `research` サブコマンド配下に walk-forward CLI をぶら下げる
app.add_typer(research_cli_app, name="research", help="Walk-forward research commands")


if __name__ == "__main__":
    app()
