"""
Ledgerman signals.

low_stock_alert is sent by SignalNotificationSink after a stock change
leaves a product at or below its minimum.

    from django.dispatch import receiver
    from ledgerman.signals import low_stock_alert

    @receiver(low_stock_alert)
    def on_low_stock(sender, topic, event, **kwargs):
        ...
"""

from django.dispatch import Signal

# Arguments: topic, event (LowStockEvent)
low_stock_alert = Signal()
