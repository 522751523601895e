"""Token lifecycle orchestrator sequencing stage transactions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from tokenforge.authority import (
    FEE_COLLECTOR_LABEL,
    PAYER_LABEL,
    TREASURY_LABEL,
    AuthorityRegistry,
    ConfirmationGate,
    Signer,
)
from tokenforge.domain import (
    AuthorityRole,
    LifecycleStage,
    Mint,
    MintExtension,
    PublicKeyStr,
    SignatureStr,
    TokenAccount,
    TokenMetadata,
    TransferFeeConfig,
    Wallet,
)
from tokenforge.ledger import (
    ExecutionError,
    ExecutionState,
    ExpiredWindow,
    LedgerClient,
    TransientTransportError,
)
from tokenforge.persistence import (
    LifecycleRecord,
    LifecycleStateStore,
    NetworkConfig,
    PendingRecord,
    TokenRecord,
)
from tokenforge.transactions import (
    PendingTransaction,
    RetryExecutor,
    SleepFn,
    StageInstruction,
    TransactionRunner,
    WaitAbandoned,
)
from tokenforge.transactions import instructions as ix
from tokenforge.utils import utc_now

from .exceptions import ConfirmationDeclined, LifecycleError
from .stages import IRREVERSIBLE_STAGES, ensure_can_enter, has_reached

DEFAULT_HOLDERS: tuple[str, ...] = (TREASURY_LABEL, FEE_COLLECTOR_LABEL)

_FEE_ACTIVATION_EPOCHS = 2

logger = logging.getLogger(__name__)


def _pubkey(value: PublicKeyStr | None) -> Pubkey:
    if value is None:
        raise LifecycleError("Expected a public key but the authority is not set")
    return Pubkey.from_string(value)


def _derive_registry(registry: AuthorityRegistry, record: LifecycleRecord) -> AuthorityRegistry:
    """Mark roles the persisted token shows as relinquished as revoked."""

    token = record.token
    if token.mint is not None:
        for role, key in token.mint.authorities.items():
            if key is None and not registry.is_revoked(role):
                registry = registry.with_revoked(role)
    metadata = token.metadata
    if metadata is not None and not metadata.is_mutable and not registry.is_revoked(AuthorityRole.UPDATE):
        registry = registry.with_revoked(AuthorityRole.UPDATE)
    return registry


class TokenLifecycleOrchestrator:
    """Drives one token through its lifecycle.

    Every stage follows the same contract: instructions are prepared once,
    then a build, sign, submit and confirm round trip runs inside the retry
    executor. The record is saved with a pending marker after submission and
    saved again, atomically, once the outcome is known. Operations on one
    orchestrator never interleave.
    """

    def __init__(
        self,
        *,
        ledger: LedgerClient,
        store: LifecycleStateStore,
        registry: AuthorityRegistry,
        record: LifecycleRecord,
        gate: ConfirmationGate | None = None,
        retry: RetryExecutor | None = None,
        poll_interval: float = 2.0,
        sleep: SleepFn = asyncio.sleep,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._record = record
        self._registry = _derive_registry(registry, record)
        self._gate = gate
        self._runner = TransactionRunner(
            ledger,
            retry=retry,
            poll_interval=poll_interval,
            sleep=sleep,
            cancel_event=cancel_event,
        )
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        *,
        ledger: LedgerClient,
        store: LifecycleStateStore,
        registry: AuthorityRegistry,
        network: NetworkConfig,
        **kwargs: object,
    ) -> TokenLifecycleOrchestrator:
        """Load the persisted record, or start a fresh one for ``network``."""

        if await store.exists():
            record = await store.load()
        else:
            record = LifecycleRecord(
                network=network,
                authorities=registry.public_keys(),
                wallets={label: wallet.public_key for label, wallet in registry.holders.items()},
            )
        return cls(ledger=ledger, store=store, registry=registry, record=record, **kwargs)  # type: ignore[arg-type]

    @property
    def record(self) -> LifecycleRecord:
        return self._record

    @property
    def stage(self) -> LifecycleStage:
        return self._record.stage

    @property
    def registry(self) -> AuthorityRegistry:
        return self._registry

    @property
    def mint(self) -> Mint | None:
        return self._record.token.mint

    @property
    def metadata(self) -> TokenMetadata | None:
        return self._record.token.metadata

    def account(self, label: str) -> TokenAccount:
        account = self._record.token.account(label)
        if account is None:
            msg = f"No token account has been provisioned for '{label}'"
            raise LifecycleError(msg)
        return account

    # Stage operations -------------------------------------------------

    async def create_mint(
        self,
        decimals: int = 6,
        *,
        freeze_authority: bool = True,
        transfer_fee: bool = True,
        fee_basis_points: int = 0,
        max_fee: int = 0,
    ) -> Mint:
        stage = LifecycleStage.MINT_CREATED
        async with self._operation("create_mint"):
            ensure_can_enter(self.stage, stage)
            if not 0 <= decimals <= 255:
                raise ValueError("decimals must be within 0..255")
            required: list[Signer] = [PAYER_LABEL, AuthorityRole.MINT, AuthorityRole.UPDATE]
            if freeze_authority:
                required.append(AuthorityRole.FREEZE)
            if transfer_fee:
                required.extend([AuthorityRole.FEE, AuthorityRole.WITHDRAW_WITHHELD])
            self._ensure_signers(*required)

            payer = self._payer()
            mint_keypair = Keypair()
            mint_key = mint_keypair.pubkey()
            mint_authority = self._registry.require(AuthorityRole.MINT)
            update_authority = self._registry.require(AuthorityRole.UPDATE)
            freeze_wallet = self._registry.require(AuthorityRole.FREEZE) if freeze_authority else None

            extensions = {MintExtension.METADATA_POINTER}
            authorities: dict[AuthorityRole, PublicKeyStr | None] = {AuthorityRole.MINT: mint_authority.public_key}
            if freeze_wallet is not None:
                authorities[AuthorityRole.FREEZE] = freeze_wallet.public_key
            fee_config: TransferFeeConfig | None = None
            if transfer_fee:
                extensions.add(MintExtension.TRANSFER_FEE_CONFIG)
                fee_wallet = self._registry.require(AuthorityRole.FEE)
                withdraw_wallet = self._registry.require(AuthorityRole.WITHDRAW_WITHHELD)
                authorities[AuthorityRole.FEE] = fee_wallet.public_key
                authorities[AuthorityRole.WITHDRAW_WITHHELD] = withdraw_wallet.public_key
                fee_config = TransferFeeConfig(
                    fee_basis_points=fee_basis_points,
                    max_fee=max_fee,
                    fee_authority=fee_wallet.public_key,
                    withdraw_withheld_authority=withdraw_wallet.public_key,
                )

            space = ix.mint_space(extensions)
            rent = await self._ledger.get_minimum_rent_exempt_balance(space)
            instructions = [
                StageInstruction(
                    ix.create_mint_account(payer.pubkey, mint_key, rent, space),
                    (PAYER_LABEL,),
                    f"allocate {space}-byte mint account",
                ),
                StageInstruction(
                    ix.initialize_metadata_pointer(mint_key, update_authority.pubkey, mint_key),
                    description="point metadata at the mint",
                ),
            ]
            if fee_config is not None:
                instructions.append(
                    StageInstruction(
                        ix.initialize_transfer_fee_config(
                            mint_key,
                            _pubkey(fee_config.fee_authority),
                            _pubkey(fee_config.withdraw_withheld_authority),
                            fee_config.fee_basis_points,
                            fee_config.max_fee,
                        ),
                        description="initialize transfer fee extension",
                    )
                )
            instructions.append(
                StageInstruction(
                    ix.initialize_mint_instruction(
                        mint_key,
                        decimals,
                        mint_authority.pubkey,
                        freeze_wallet.pubkey if freeze_wallet is not None else None,
                    ),
                    description=f"initialize mint with {decimals} decimals",
                )
            )
            mint = Mint(
                address=PublicKeyStr(str(mint_key)),
                decimals=decimals,
                supply=0,
                extensions=frozenset(extensions),
                authorities=authorities,
                transfer_fee=fee_config,
            )
            outcome = self._record.token.model_copy(update={"mint": mint})
            await self._transact(
                "create_mint",
                stage,
                instructions,
                outcome,
                ephemeral_signers=(mint_keypair,),
            )
            logger.info("Created mint %s with %d decimals", mint.address, decimals)
            return mint

    async def attach_metadata(self, name: str, symbol: str, uri: str) -> TokenMetadata:
        stage = LifecycleStage.METADATA_ATTACHED
        async with self._operation("attach_metadata"):
            ensure_can_enter(self.stage, stage)
            mint = self._require_mint()
            self._ensure_signers(PAYER_LABEL, AuthorityRole.MINT, AuthorityRole.UPDATE)
            update_authority = self._registry.require(AuthorityRole.UPDATE)
            mint_authority = self._registry.require(AuthorityRole.MINT)
            metadata = TokenMetadata(
                mint=mint.address,
                name=name,
                symbol=symbol,
                uri=uri,
                update_authority=update_authority.public_key,
            )
            mint_key = _pubkey(mint.address)
            base_space = ix.mint_space(mint.extensions)
            extra_space = ix.metadata_space(metadata.name, metadata.symbol, metadata.uri)
            current_rent = await self._ledger.get_minimum_rent_exempt_balance(base_space)
            required_rent = await self._ledger.get_minimum_rent_exempt_balance(base_space + extra_space)
            instructions = [
                StageInstruction(
                    ix.transfer_lamports(self._payer().pubkey, mint_key, required_rent - current_rent),
                    (PAYER_LABEL,),
                    f"fund {extra_space} bytes of metadata",
                ),
                StageInstruction(
                    ix.initialize_token_metadata(
                        mint_key,
                        update_authority.pubkey,
                        mint_authority.pubkey,
                        metadata.name,
                        metadata.symbol,
                        metadata.uri,
                    ),
                    (AuthorityRole.MINT,),
                    f"write metadata {metadata.symbol}",
                ),
            ]
            outcome = self._record.token.model_copy(update={"metadata": metadata})
            await self._transact("attach_metadata", stage, instructions, outcome)
            return metadata

    async def provision_accounts(self, holders: Iterable[str] = DEFAULT_HOLDERS) -> list[TokenAccount]:
        stage = LifecycleStage.ACCOUNTS_PROVISIONED
        async with self._operation("provision_accounts"):
            ensure_can_enter(self.stage, stage)
            labels = list(dict.fromkeys(holders))
            if not labels:
                raise ValueError("At least one holder must be provisioned")
            self._ensure_signers(PAYER_LABEL, *labels)
            mint = self._require_mint()
            mint_key = _pubkey(mint.address)
            payer = self._payer()
            instructions: list[StageInstruction] = []
            outcome = self._record.token
            accounts: list[TokenAccount] = []
            for label in labels:
                owner = self._registry.wallet_for(label)
                address, instruction = ix.create_associated_account(payer.pubkey, owner.pubkey, mint_key)
                instructions.append(StageInstruction(instruction, (PAYER_LABEL,), f"create {label} account"))
                account = TokenAccount(
                    label=label,
                    address=PublicKeyStr(str(address)),
                    owner=owner.public_key,
                    mint=mint.address,
                )
                accounts.append(account)
                outcome = outcome.with_account(account)
            await self._transact("provision_accounts", stage, instructions, outcome)
            return accounts

    async def mint_supply(self, holder: str, amount: int) -> TokenAccount:
        stage = LifecycleStage.SUPPLY_MINTED
        async with self._operation("mint_supply"):
            ensure_can_enter(self.stage, stage)
            return await self._mint(stage, holder, amount)

    async def configure_fee(self, fee_basis_points: int, max_fee: int = 0) -> TransferFeeConfig:
        """Set the fee schedule charged on transfers.

        A rate equal to the one the mint already charges is recorded as is.
        Any other rate is recorded as a newer schedule that the ledger starts
        charging two epochs from now; until then transfers keep the old rate.
        """

        stage = LifecycleStage.FEE_CONFIGURED
        async with self._operation("configure_fee"):
            ensure_can_enter(self.stage, stage)
            mint = self._require_mint()
            if mint.transfer_fee is None or not mint.has_extension(MintExtension.TRANSFER_FEE_CONFIG):
                raise LifecycleError("The mint was created without the transfer fee extension")
            self._ensure_signers(PAYER_LABEL, AuthorityRole.FEE)
            config = mint.transfer_fee.model_copy(
                update={"fee_basis_points": fee_basis_points, "max_fee": max_fee}
            )
            config = TransferFeeConfig.model_validate(config.model_dump())
            epoch = await self._ledger.get_epoch()
            current = mint.at_epoch(epoch)
            if current.transfer_fee is not None and config.same_rate(current.transfer_fee):
                updated = current.model_copy(
                    update={"transfer_fee": config, "newer_transfer_fee": None, "newer_fee_epoch": None}
                )
            else:
                updated = current.model_copy(
                    update={"newer_transfer_fee": config, "newer_fee_epoch": epoch + _FEE_ACTIVATION_EPOCHS}
                )
            fee_authority = self._registry.require(AuthorityRole.FEE)
            instructions = [
                StageInstruction(
                    ix.set_transfer_fee(_pubkey(mint.address), fee_authority.pubkey, fee_basis_points, max_fee),
                    (AuthorityRole.FEE,),
                    f"set transfer fee to {fee_basis_points} bps",
                )
            ]
            outcome = self._record.token.model_copy(update={"mint": updated})
            await self._transact("configure_fee", stage, instructions, outcome)
            if updated.newer_fee_epoch is not None:
                logger.warning(
                    "Transfer fee of %d bps takes effect at epoch %d; %d bps applies until then",
                    fee_basis_points,
                    updated.newer_fee_epoch,
                    updated.transfer_fee.fee_basis_points if updated.transfer_fee else 0,
                )
            return config

    async def revoke_mint_authority(self) -> Mint:
        stage = LifecycleStage.MINT_AUTHORITY_REVOKED
        async with self._operation("revoke_mint_authority"):
            ensure_can_enter(self.stage, stage)
            mint = self._require_mint()
            self._ensure_signers(PAYER_LABEL, AuthorityRole.MINT)
            await self._confirm(stage)
            authority = self._registry.require(AuthorityRole.MINT)
            instructions = [
                StageInstruction(
                    ix.revoke_mint_authority(_pubkey(mint.address), authority.pubkey),
                    (AuthorityRole.MINT,),
                    "revoke mint authority",
                )
            ]
            revoked = mint.with_revoked(AuthorityRole.MINT)
            outcome = self._record.token.model_copy(update={"mint": revoked})
            await self._transact("revoke_mint_authority", stage, instructions, outcome)
            logger.warning("Mint authority for %s revoked; supply is now fixed at %d", mint.address, mint.supply)
            return revoked

    async def make_metadata_immutable(self) -> TokenMetadata:
        stage = LifecycleStage.METADATA_IMMUTABILIZED
        async with self._operation("make_metadata_immutable"):
            ensure_can_enter(self.stage, stage)
            mint = self._require_mint()
            metadata = self.metadata
            if metadata is None:
                raise LifecycleError("No metadata has been attached")
            self._ensure_signers(PAYER_LABEL, AuthorityRole.UPDATE)
            await self._confirm(stage)
            authority = self._registry.require(AuthorityRole.UPDATE)
            instructions = [
                StageInstruction(
                    ix.update_metadata_authority(_pubkey(mint.address), authority.pubkey, None),
                    (AuthorityRole.UPDATE,),
                    "remove metadata update authority",
                )
            ]
            locked = metadata.model_copy(update={"is_mutable": False, "update_authority": None})
            outcome = self._record.token.model_copy(update={"metadata": locked})
            await self._transact("make_metadata_immutable", stage, instructions, outcome)
            logger.warning("Metadata for %s is now immutable", mint.address)
            return locked

    async def finalize(self) -> LifecycleRecord:
        stage = LifecycleStage.FINALIZED
        async with self._operation("finalize"):
            ensure_can_enter(self.stage, stage)
            await self._save(self._record.model_copy(update={"stage": stage, "updated_at": utc_now()}))
            logger.info("Lifecycle finalized for %s", self.mint.address if self.mint else "<no mint>")
            return self._record

    # Repeatable operations ----------------------------------------------

    async def mint_to(self, holder: str, amount: int) -> TokenAccount:
        async with self._operation("mint_to"):
            self._require_stage(LifecycleStage.SUPPLY_MINTED)
            return await self._mint(None, holder, amount)

    async def transfer(self, source: str, destination_owner: str, amount: int) -> TokenAccount:
        """Move ``amount`` raw units from a holder to another owner.

        ``destination_owner`` is either a loaded wallet label or a base58
        public key. The destination's associated account is created in the
        same transaction when it is not yet known.
        """

        async with self._operation("transfer"):
            self._require_stage(LifecycleStage.SUPPLY_MINTED)
            if amount <= 0:
                raise ValueError("Transfer amount must be positive")
            mint = self._require_mint()
            source_account = self.account(source)
            self._ensure_signers(PAYER_LABEL, source)
            if source_account.frozen:
                msg = f"Account '{source}' is frozen"
                raise LifecycleError(msg)
            if source_account.balance < amount:
                msg = f"Account '{source}' holds {source_account.balance}, cannot transfer {amount}"
                raise LifecycleError(msg)

            mint_key = _pubkey(mint.address)
            owner_key, label = self._resolve_owner(destination_owner)
            if label == source or str(owner_key) == source_account.owner:
                msg = f"Account '{source}' cannot transfer to itself"
                raise LifecycleError(msg)
            instructions: list[StageInstruction] = []
            destination = self._record.token.account(label)
            if destination is None:
                address, instruction = ix.create_associated_account(self._payer().pubkey, owner_key, mint_key)
                instructions.append(StageInstruction(instruction, (PAYER_LABEL,), f"create {label} account"))
                destination = TokenAccount(
                    label=label,
                    address=PublicKeyStr(str(address)),
                    owner=PublicKeyStr(str(owner_key)),
                    mint=mint.address,
                )
            elif destination.frozen:
                msg = f"Account '{label}' is frozen"
                raise LifecycleError(msg)

            source_wallet = self._registry.wallet_for(source)
            instructions.append(
                StageInstruction(
                    ix.transfer(
                        _pubkey(source_account.address),
                        mint_key,
                        _pubkey(destination.address),
                        source_wallet.pubkey,
                        amount,
                        mint.decimals,
                    ),
                    (source,),
                    f"transfer {amount} from {source} to {label}",
                )
            )
            current = await self._mint_in_force(mint)
            fee = current.transfer_fee
            withheld = fee.breakdown(amount).withheld if fee is not None else 0
            credited = destination.model_copy(
                update={
                    "balance": destination.balance + amount - withheld,
                    "withheld": destination.withheld + withheld,
                }
            )
            debited = source_account.model_copy(update={"balance": source_account.balance - amount})
            outcome = self._record.token.with_account(debited).with_account(credited)
            if current is not mint:
                outcome = outcome.model_copy(update={"mint": current})
            await self._transact("transfer", None, instructions, outcome)
            return credited

    async def burn(self, holder: str, amount: int) -> TokenAccount:
        async with self._operation("burn"):
            self._require_stage(LifecycleStage.SUPPLY_MINTED)
            if amount <= 0:
                raise ValueError("Burn amount must be positive")
            mint = self._require_mint()
            account = self.account(holder)
            self._ensure_signers(PAYER_LABEL, holder)
            if account.balance < amount:
                msg = f"Account '{holder}' holds {account.balance}, cannot burn {amount}"
                raise LifecycleError(msg)
            owner = self._registry.wallet_for(holder)
            instructions = [
                StageInstruction(
                    ix.burn(_pubkey(account.address), _pubkey(mint.address), owner.pubkey, amount, mint.decimals),
                    (holder,),
                    f"burn {amount} from {holder}",
                )
            ]
            updated = account.model_copy(update={"balance": account.balance - amount})
            outcome = self._record.token.with_account(updated).model_copy(
                update={"mint": mint.model_copy(update={"supply": mint.supply - amount})}
            )
            await self._transact("burn", None, instructions, outcome)
            return updated

    async def freeze(self, holder: str) -> TokenAccount:
        return await self._set_frozen(holder, frozen=True)

    async def thaw(self, holder: str) -> TokenAccount:
        return await self._set_frozen(holder, frozen=False)

    async def resume(self) -> LifecycleStage:
        """Reconcile a submission left pending by an interrupted run."""

        async with self._operation("resume"):
            pending = self._record.pending
            if pending is None:
                return self.stage
            status = await self._runner.reconcile(pending.signature)
            if status.state is ExecutionState.SUCCESS:
                logger.info("Pending %s (%s) executed; applying its outcome", pending.operation, pending.signature)
                await self._apply_outcome(pending.stage, pending.outcome, SignatureStr(pending.signature))
                return self.stage
            if status.state is ExecutionState.ERROR:
                logger.warning("Pending %s failed on ledger: %s", pending.operation, status.error)
                await self._clear_pending()
                return self.stage
            height = await self._ledger.get_current_height()
            if height > pending.expiry_height:
                logger.warning("Pending %s expired unobserved; clearing marker", pending.operation)
                await self._clear_pending()
                return self.stage
            msg = (
                f"{pending.operation} ({pending.signature}) is still pending until height "
                f"{pending.expiry_height}; retry later"
            )
            raise LifecycleError(msg)

    # Internals ----------------------------------------------------------

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        async with self._lock:
            try:
                yield
            except Exception as exc:
                exc.add_note(f"{name} failed at stage {self.stage}")
                raise

    async def _mint(self, stage: LifecycleStage | None, holder: str, amount: int) -> TokenAccount:
        if amount <= 0:
            raise ValueError("Mint amount must be positive")
        mint = self._require_mint()
        self._ensure_signers(PAYER_LABEL, AuthorityRole.MINT)
        account = self.account(holder)
        authority = self._registry.require(AuthorityRole.MINT)
        instructions = [
            StageInstruction(
                ix.mint_to(_pubkey(mint.address), _pubkey(account.address), authority.pubkey, amount, mint.decimals),
                (AuthorityRole.MINT,),
                f"mint {amount} to {holder}",
            )
        ]
        updated = account.model_copy(update={"balance": account.balance + amount})
        outcome = self._record.token.with_account(updated).model_copy(
            update={"mint": mint.model_copy(update={"supply": mint.supply + amount})}
        )
        await self._transact("mint_to" if stage is None else "mint_supply", stage, instructions, outcome)
        return updated

    async def _set_frozen(self, holder: str, *, frozen: bool) -> TokenAccount:
        name = "freeze" if frozen else "thaw"
        async with self._operation(name):
            self._require_stage(LifecycleStage.SUPPLY_MINTED)
            mint = self._require_mint()
            account = self.account(holder)
            self._ensure_signers(PAYER_LABEL, AuthorityRole.FREEZE)
            if account.frozen is frozen:
                msg = f"Account '{holder}' is already {'frozen' if frozen else 'thawed'}"
                raise LifecycleError(msg)
            authority = self._registry.require(AuthorityRole.FREEZE)
            build = ix.freeze if frozen else ix.thaw
            instructions = [
                StageInstruction(
                    build(_pubkey(account.address), _pubkey(mint.address), authority.pubkey),
                    (AuthorityRole.FREEZE,),
                    f"{name} {holder}",
                )
            ]
            updated = account.model_copy(update={"frozen": frozen})
            await self._transact(name, None, instructions, self._record.token.with_account(updated))
            return updated

    async def _transact(
        self,
        operation: str,
        stage: LifecycleStage | None,
        instructions: Sequence[StageInstruction],
        outcome: TokenRecord,
        *,
        ephemeral_signers: Sequence[Keypair] = (),
    ) -> PendingTransaction:
        async def on_submitted(tx: PendingTransaction) -> None:
            await self._persist_pending(operation, stage, tx, outcome)

        try:
            result = await self._runner.execute(
                instructions,
                self._payer(),
                self._registry,
                ephemeral_signers=ephemeral_signers,
                on_submitted=on_submitted,
                label=operation,
            )
        except (ExecutionError, ExpiredWindow):
            await self._clear_pending()
            raise
        except (TransientTransportError, WaitAbandoned):
            if self._record.pending is not None:
                logger.warning(
                    "%s left pending as %s; run resume once the ledger is reachable",
                    operation,
                    self._record.pending.signature,
                )
            raise
        await self._apply_outcome(stage, outcome, SignatureStr(result.require_signature()))
        return result

    async def _persist_pending(
        self,
        operation: str,
        stage: LifecycleStage | None,
        tx: PendingTransaction,
        outcome: TokenRecord,
    ) -> None:
        mint = outcome.mint
        pending = PendingRecord(
            operation=operation,
            stage=stage,
            signature=SignatureStr(tx.require_signature()),
            expiry_height=tx.expiry_height,
            mint_address=mint.address if mint is not None else None,
            outcome=outcome,
        )
        await self._save(self._record.model_copy(update={"pending": pending, "updated_at": utc_now()}))

    async def _apply_outcome(
        self,
        stage: LifecycleStage | None,
        outcome: TokenRecord,
        signature: SignatureStr,
    ) -> None:
        update: dict[str, object] = {
            "token": outcome,
            "pending": None,
            "history": [*self._record.history, signature],
            "updated_at": utc_now(),
        }
        if stage is not None:
            update["stage"] = stage
        record = self._record.model_copy(update=update)
        self._registry = _derive_registry(self._registry, record)
        record = record.model_copy(update={"authorities": self._registry.public_keys()})
        await self._save(record)

    async def _clear_pending(self) -> None:
        if self._record.pending is None:
            return
        await self._save(self._record.model_copy(update={"pending": None, "updated_at": utc_now()}))

    async def _save(self, record: LifecycleRecord) -> None:
        await self._store.save_atomic(record)
        self._record = record

    async def _confirm(self, stage: LifecycleStage) -> None:
        if stage not in IRREVERSIBLE_STAGES:
            return
        if self._gate is None or not await self._gate.confirm_irreversible(stage):
            msg = f"Operator declined {stage}"
            raise ConfirmationDeclined(msg)

    def _ensure_signers(self, *signers: Signer) -> None:
        for signer in signers:
            self._registry.resolve(signer)

    def _payer(self) -> Wallet:
        return self._registry.payer

    def _require_mint(self) -> Mint:
        mint = self.mint
        if mint is None:
            raise LifecycleError("No mint has been created yet")
        return mint

    def _require_stage(self, stage: LifecycleStage) -> None:
        if not has_reached(self.stage, stage):
            msg = f"Operation requires stage {stage}; token is at {self.stage}"
            raise LifecycleError(msg)

    async def _mint_in_force(self, mint: Mint) -> Mint:
        if mint.newer_transfer_fee is None:
            return mint
        return mint.at_epoch(await self._ledger.get_epoch())

    def _resolve_owner(self, destination: str) -> tuple[Pubkey, str]:
        holder = self._registry.holders.get(destination)
        if holder is not None:
            return holder.pubkey, destination
        try:
            return Pubkey.from_string(destination), destination
        except ValueError as exc:
            msg = f"'{destination}' is neither a loaded wallet nor a valid public key"
            raise LifecycleError(msg) from exc


__all__ = ["DEFAULT_HOLDERS", "TokenLifecycleOrchestrator"]
