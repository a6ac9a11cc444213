from __future__ import annotations

from harvest_bot.app.bot import main as _main


def main() -> None:
    """Module entry point used by ``python -m harvest_bot``."""
    _main()


if __name__ == "__main__":
    main()
