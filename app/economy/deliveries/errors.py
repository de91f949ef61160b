class DeliveryError(Exception):
    pass


class DeliveryNotFoundError(DeliveryError):
    pass


class DeliveryStateError(DeliveryError):
    pass


class DeliveryLeaseLostError(DeliveryStateError):
    pass
