"""Win/loss counter built on docshape: one ``games`` collection, three functions."""
