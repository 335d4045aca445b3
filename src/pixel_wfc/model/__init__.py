"""Contains the pattern library, the WFC engine and the classes driving it."""
