"""Package entry point for ``python -m callscout``.

WHY: Users run ``python -m callscout replay tesla-q1-2025`` without
installing a console script. Python's ``-m`` flag looks for
``__main__.py`` inside the package and executes it.
"""

from callscout.cli import main

if __name__ == "__main__":
    main()
