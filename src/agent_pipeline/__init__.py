"""Agent Pipeline: compose named agents into ordered pipelines and run them."""

__version__ = "0.1.0"
