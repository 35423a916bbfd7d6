# mpki/__main__.py

from mpki.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
