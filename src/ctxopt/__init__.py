"""ctxopt - budgeted context selection for code-generation agents."""

__version__ = "0.1.0"
