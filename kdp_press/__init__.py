"""Print-ready publication assembly for coloring books and clipart bundles"""

__version__ = "0.1.0"
