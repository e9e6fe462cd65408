"""EcoFinds marketplace client: catalog queries, cart consistency and checkout."""

__version__ = "0.1.0"
