"""Developer feed reader core.

Ranks many engineering blog feeds into one reading queue, resolves the
selected article's content from its original page (falling back to the
feed's embedded body), and turns the sanitized HTML into a restricted tree
of renderable nodes.
"""

__version__ = "0.1.0"
