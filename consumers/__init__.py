from consumers.dispatch import DispatchConsumer

__all__ = ["DispatchConsumer"]
