class PaymentProviderError(Exception):
    pass


class PaymentProviderNotConfiguredError(PaymentProviderError):
    pass


class PaymentWebhookSignatureError(PaymentProviderError):
    pass


class PaymentAmountInvalidError(PaymentProviderError):
    pass
