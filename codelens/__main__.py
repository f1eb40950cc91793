"""Run the bot with ``python -m codelens``."""
import sys

from codelens.interfaces.telegram.run import main

if __name__ == "__main__":
    sys.exit(main())
