from .resend_notifier import ResendNotifier

__all__ = ["ResendNotifier"]
