"""Run the hub-render command line tool with `python -m hub_render`."""

from .tool.hub_render import main

if __name__ == "__main__":
    main()
