# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Airdrop plan files.

A plan maps each holder to the amount it should receive (`target`) and the
amount already sent (`actual`). Amounts are written as decimal strings so
they survive JSON readers that parse numbers as floats:

    {
      "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed": {"target": "1250000000000000000", "actual": "0"}
    }
"""

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_serializer, model_validator
from typing_extensions import Self

logger = logging.getLogger(__name__)

PLAN_FILE_PREFIX = 'airdrop-amounts'


def _now_ms(now: Optional[float] = None) -> int:
    return int((time.time() if now is None else now) * 1000)


class AirdropAmount(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    target: int = Field(ge=0)
    actual: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def _validate_actual(self) -> Self:
        if self.actual > self.target:
            raise ValueError(f'actual amount {self.actual} is above target {self.target}')
        return self

    @field_serializer('target', 'actual')
    def _serialize_amount(self, value: int) -> str:
        return str(value)

    @property
    def remaining(self) -> int:
        return self.target - self.actual

    @property
    def is_done(self) -> bool:
        return self.actual == self.target


class AirdropPlan(RootModel[dict[str, AirdropAmount]]):
    """Ordered mapping of holder address to its airdrop amounts."""

    def __getitem__(self, wallet: str) -> AirdropAmount:
        return self.root[wallet]

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, wallet: object) -> bool:
        return wallet in self.root

    def items(self) -> Iterator[tuple[str, AirdropAmount]]:
        return iter(self.root.items())

    def pending(self) -> list[str]:
        return [wallet for wallet, amount in self.root.items() if not amount.is_done]

    def total_target(self) -> int:
        return sum(amount.target for amount in self.root.values())

    def total_actual(self) -> int:
        return sum(amount.actual for amount in self.root.values())

    def is_complete(self) -> bool:
        return not self.pending()


class PlanCheckpoint:
    """A plan file that is rewritten after every transfer.

    Writes go to a temporary file that is synced and then renamed over the
    checkpoint, so a crash leaves either the previous or the new version.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def __call__(self, plan: AirdropPlan) -> None:
        self.save(plan)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> AirdropPlan:
        return AirdropPlan.model_validate_json(self.path.read_text())

    def save(self, plan: AirdropPlan) -> None:
        tmp_path = self.path.with_name(f'{self.path.name}.tmp')
        with open(tmp_path, 'w') as f:
            f.write(plan.model_dump_json(indent=2))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)
        logger.debug('checkpoint saved to %s', self.path)

    def backup(self, now: Optional[float] = None) -> Optional[Path]:
        """Copy the checkpoint next to itself with a timestamp. Returns None when there is nothing to back up."""
        if not self.path.exists():
            return None
        backup_path = self.path.with_name(f'{self.path.stem}-{_now_ms(now)}.bak{self.path.suffix}')
        shutil.copy2(self.path, backup_path)
        logger.info('checkpoint %s backed up to %s', self.path, backup_path)
        return backup_path

    def results(self) -> 'PlanCheckpoint':
        """Checkpoint that records the progress of a distribution of this plan."""
        if self.path.stem.endswith('-results'):
            return self
        return PlanCheckpoint(self.path.with_name(f'{self.path.stem}-results{self.path.suffix}'))


def save_new_plan(plan: AirdropPlan, directory: Union[str, Path], now: Optional[float] = None) -> PlanCheckpoint:
    """Write a freshly computed plan as `airdrop-amounts-<epoch ms>.json` in `directory`."""
    checkpoint = PlanCheckpoint(Path(directory) / f'{PLAN_FILE_PREFIX}-{_now_ms(now)}.json')
    checkpoint.save(plan)
    logger.info('airdrop plan for %d holders saved to %s', len(plan), checkpoint.path)
    return checkpoint
