"""
Ledger Error Taxonomy

Every rejection the engine can produce is a ChainError:
- Block validation errors are raised before any state is touched
- Transaction errors are raised by the executor for a single transaction
- TransactionFailed wraps a transaction error with its position in the block

Nothing here is transient; a rejected block must be fixed and resubmitted.
"""


class ChainError(Exception):
    """Base class for everything append_block can raise."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BlockValidationError(ChainError):
    """Block rejected before execution; the ledger is untouched."""
    pass


class EmptyBlock(BlockValidationError):
    """A block with zero transactions was proposed."""
    pass


class OversizedBlock(BlockValidationError):
    """Block carries more transactions than the configured limit."""
    pass


class BrokenChainLink(BlockValidationError):
    """prev_hash does not match the current head."""
    pass


class HashMismatch(BlockValidationError):
    """Stored trans_hash is missing or differs from the recomputed digest."""
    pass


class TransactionError(ChainError):
    """A single transaction could not be applied."""
    pass


class AccountExists(TransactionError):
    pass


class UnknownAccount(TransactionError):
    pass


class InsufficientFunds(TransactionError):
    pass


class UnauthorizedMint(TransactionError):
    """Token creation by a non-validator outside the genesis block."""
    pass


class UnauthorizedRegistration(TransactionError):
    """Validator registration by a non-validator outside the genesis block."""
    pass


class MintLimitExceeded(TransactionError):
    pass


class TransactionFailed(ChainError):
    """
    Block-level execution failure.

    Carries the 1-based position of the offending transaction and the
    underlying TransactionError. The block was rolled back.
    """

    def __init__(self, index: int, cause: TransactionError):
        super().__init__(f"Transaction {index} failed: {cause.message}")
        self.index = index
        self.cause = cause
