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


class SaleFail(Exception):
    """Raised when a public method fails. Every change made by the call is rolled back."""
    pass


class InvalidAddress(SaleFail):
    pass


class Unauthorized(SaleFail):
    pass


class Paused(SaleFail):
    pass


class NotPaused(SaleFail):
    pass


class GasPriceTooHigh(SaleFail):
    pass


class NotRunning(SaleFail):
    pass


class NotKyced(SaleFail):
    pass


class BelowMinimum(SaleFail):
    pass


class CapExceeded(SaleFail):
    pass


class InsufficientReservation(SaleFail):
    pass


class PendingReservations(SaleFail):
    pass


class PrematureFinish(SaleFail):
    pass


class AlreadyFinished(SaleFail):
    pass


class NoAirdropFunds(SaleFail):
    pass


class AirdropOversubscribed(SaleFail):
    pass


class ArithmeticOverflow(SaleFail):
    pass


class ZeroRate(SaleFail):
    pass


class InvalidPhaseTransition(SaleFail):
    pass


class ReservationsClosed(SaleFail):
    pass


class ReferrerAlreadySet(SaleFail):
    pass


class ReentrantCall(SaleFail):
    pass


class ValueNotAccepted(SaleFail):
    pass


class InvalidParameters(SaleFail):
    pass


class MintingFinished(SaleFail):
    pass


class TransfersLocked(SaleFail):
    pass


class InsufficientBalance(SaleFail):
    pass


class InsufficientAllowance(SaleFail):
    pass


class SettingsError(ValueError):
    """Raised when the sale settings cannot be loaded from the environment."""
    pass
