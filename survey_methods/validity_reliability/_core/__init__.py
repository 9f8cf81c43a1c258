"""Core reliability computations shared by the scale-construction runners."""
