# engine_indexer/__main__.py

"""
Usage: python -m engine_indexer [command] [options]
"""

from .cli import cli


if __name__ == '__main__':
    cli(obj={})
