from .queue import DeliveryQueue, DeliveryQueueItem

__all__ = ["DeliveryQueue", "DeliveryQueueItem"]
