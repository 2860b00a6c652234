from tokensale.airdrop.checkpoint import AirdropAmount, AirdropPlan, PlanCheckpoint, save_new_plan
from tokensale.airdrop.distributor import AirdropDistributor, ApplyResult

__all__ = [
    'AirdropAmount',
    'AirdropDistributor',
    'AirdropPlan',
    'ApplyResult',
    'PlanCheckpoint',
    'save_new_plan',
]
