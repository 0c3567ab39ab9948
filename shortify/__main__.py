"""Package entry point for ``python -m shortify``.

Delegates to the CLI's main() function.
"""

from shortify.cli import main

if __name__ == "__main__":
    main()
