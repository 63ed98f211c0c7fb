# ondevice_ai/__main__.py
from ondevice_ai.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
