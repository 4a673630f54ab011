"""Script de ejecución.

Por qué existe:
- Permite ejecutar la CLI con `python src/main.py chat` durante desarrollo.
- Mantiene un entrypoint simple además del script `gds`.
"""

from __future__ import annotations

import sys

# Windows terminals default to cp1252; chat replies and the onboarding
# catalog ("£", "–") need utf-8.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
