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

from dataclasses import dataclass
from typing import Any, NewType

from web3 import Web3

from tokensale.exception import InvalidAddress

Address = NewType('Address', str)
Amount = NewType('Amount', int)
Timestamp = NewType('Timestamp', int)

ZERO_ADDRESS = Address('0x0000000000000000000000000000000000000000')

BASIS_POINTS = 10000
WEI_PER_ETHER = 10**18


def to_address(value: Any) -> Address:
    """Normalize `value` to a checksum address, rejecting the zero address."""
    if not value or not isinstance(value, str):
        raise InvalidAddress(f'Invalid address: {value!r}')
    if not Web3.is_address(value):
        raise InvalidAddress(f'Invalid address: {value}')
    address = Address(Web3.to_checksum_address(value))
    if address == ZERO_ADDRESS:
        raise InvalidAddress('Zero address is not allowed')
    return address


def derive_address(seed: bytes | str) -> Address:
    """Derive a deterministic address from a seed, the way contract addresses are derived from creator data."""
    if isinstance(seed, str):
        seed = seed.encode()
    return Address(Web3.to_checksum_address(Web3.keccak(seed)[-20:]))


@dataclass(frozen=True, slots=True)
class Context:
    """Information about a single invocation of a public method."""
    caller_id: Address
    value: Amount = Amount(0)
    gas_price: int = 0
    timestamp: Timestamp = Timestamp(0)
