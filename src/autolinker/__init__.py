"""Auto Linker: turn phrases under the cursor into links to notes, headings, blocks and tags."""

__version__ = "0.1.0"
