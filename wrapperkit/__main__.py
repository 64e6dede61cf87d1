"""Allow ``python -m wrapperkit``."""

from wrapperkit.cli.parser import main

if __name__ == "__main__":
    main()
