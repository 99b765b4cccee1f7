"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple


class FilterMode(str, Enum):
    """Which word range produced a filtered batch"""

    STRICT = "strict"
    RELAX1 = "relax1"
    RELAX2 = "relax2"
    EXHAUSTED = "exhausted"


class BankSource(str, Enum):
    """Where DailyBankManager.ensure found its lines"""

    TODAY = "today"
    LATEST_FALLBACK = "latest-fallback"
    NONE = "none"


class BuildOutcome(str, Enum):
    """Terminal state of one bank build attempt"""

    BUILT = "built"
    EXISTS = "exists"
    SKIPPED_INVALID = "skipped_invalid"
    SKIPPED_LOCKED = "skipped_locked"
    TOO_SMALL = "too_small"
    FAILED = "failed"


class CreditPool(str, Enum):
    """Independently metered balances on a ledger account"""

    PRO = "pro"
    CHAT = "chat"


class EntitlementOutcome(str, Enum):
    GRANTED = "granted"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


@dataclass(frozen=True)
class WordRange:
    """Inclusive word-count bounds"""

    min_words: int
    max_words: int

    def contains(self, count: int) -> bool:
        return self.min_words <= count <= self.max_words


@dataclass(frozen=True)
class ContentLine:
    """A vetted utterance ending in exactly one emoji"""

    text: str
    word_count: int


@dataclass(frozen=True)
class FilterResult:
    """Lines accepted by the word filter and the range that accepted them"""

    lines: List[ContentLine]
    mode: FilterMode
    word_range: WordRange

    @property
    def texts(self) -> List[str]:
        return [line.text for line in self.lines]


@dataclass(frozen=True)
class BankEntry:
    """Daily pool of thoughts for one label"""

    label: str
    day: date
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class EnsureResult:
    """Outcome of a bank lookup: the lines served, their source and whether a build was started"""

    lines: Tuple[str, ...]
    source: BankSource
    triggered_build: bool
    day: Optional[date] = None


@dataclass(frozen=True)
class PoolBalance:
    """Granted vs used counters for one credit pool"""

    granted: int
    used: int

    @property
    def remaining(self) -> int:
        return max(0, self.granted - self.used)


@dataclass(frozen=True)
class AccountBalances:
    account_id: str
    pro: PoolBalance
    chat: PoolBalance

    def pool(self, pool: CreditPool) -> PoolBalance:
        return self.pro if pool is CreditPool.PRO else self.chat


@dataclass(frozen=True)
class SpendResult:
    """Result of a conditional spend; balance is post-operation (unchanged on refusal)"""

    ok: bool
    pool: CreditPool
    balance: PoolBalance


@dataclass(frozen=True)
class EntitlementEvent:
    """Store notification delivered at-least-once by the payment provider"""

    event_id: str
    subject_id: str
    product_id: str


@dataclass(frozen=True)
class DedupeOutcome:
    is_new: bool


@dataclass(frozen=True)
class EntitlementResult:
    outcome: EntitlementOutcome
    pool: Optional[CreditPool] = None
    balance: Optional[PoolBalance] = None


@dataclass(frozen=True)
class ClassificationResult:
    """Normalized subject label for an image, or a reason it was not usable"""

    ok: bool
    label: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class PaidActionResult:
    """Output of a metered action together with the spend balances"""

    ok: bool
    balance: PoolBalance
    output: Optional[str] = None
    error: Optional[str] = None
