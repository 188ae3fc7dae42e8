from .registry import TokenRegistry, human_price

__all__ = ["TokenRegistry", "human_price"]
