"""
Price Alert — posts the latest Pyth price of a feed to Telegram on every tick.
"""

from workflows.price_alert.workflow import PriceAlertWorkflow

workflow = PriceAlertWorkflow()
