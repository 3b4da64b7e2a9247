"""
crafttree - Recipe tree normalization, layout and animated reveal.

Turns search results from a recipe-graph backend into positioned
trees and plays them back in the order each search algorithm would
discover them.
"""

__version__ = "0.1.0"
