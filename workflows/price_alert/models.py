from chainpilot.models import WorkflowConfig


class PriceAlertConfig(WorkflowConfig):
    url: str
