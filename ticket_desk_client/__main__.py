"""Allow ``python -m ticket_desk_client``."""

from .cli import main

if __name__ == "__main__":
    main()
