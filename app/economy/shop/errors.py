class ShopError(Exception):
    pass


class ShopValidationError(ShopError):
    pass


class ShopCartEmptyError(ShopValidationError):
    pass


class ShopCartInvalidError(ShopValidationError):
    pass


class ShopMinecraftAccountInvalidError(ShopValidationError):
    pass


class ShopProductNotFoundError(ShopError):
    pass


class ShopProductUnavailableError(ShopValidationError):
    pass


class ShopOrderTotalInvalidError(ShopValidationError):
    pass


class ShopOrderNotFoundError(ShopError):
    pass


class ShopOrderForbiddenError(ShopError):
    pass


class ShopOrderProviderMismatchError(ShopError):
    pass


class ShopOrderStateError(ShopError):
    pass


class ShopPaymentReferenceMismatchError(ShopError):
    pass


class ShopPaymentNotCompletedError(ShopError):
    pass
