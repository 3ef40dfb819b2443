"""Allow ``python -m leverage_monitor``."""
from .cli import main

if __name__ == "__main__":
    main()
