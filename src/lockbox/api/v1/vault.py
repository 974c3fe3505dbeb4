'Vault endpoints. Every value handled here is opaque client ciphertext.'
from fastapi import APIRouter, Depends, Request
from lockbox.api.v1.auth import get_current_user
from lockbox.db.vault_store import VaultStore, get_vault_store
from lockbox.models.records import UserRecord
from lockbox.models.vault_model import (
    VaultPayload,
    VaultResponse,
    VaultSavedResponse,
    MessageResponse
)
from lockbox.utils.security_audit import get_client_ip, log_security_event


router = APIRouter()


@router.get("", response_model=VaultResponse)
async def get_vault(
    current_user: UserRecord = Depends(get_current_user),
    store: VaultStore = Depends(get_vault_store)
):
    """Return the stored pair, or nulls when no vault exists yet."""
    vault = await store.get_vault(current_user.id)
    if not vault:
        return VaultResponse()
    return VaultResponse(masterHash=vault.master_hash, encryptedData=vault.encrypted_data)


@router.put("", response_model=VaultSavedResponse)
async def save_vault(
    payload: VaultPayload,
    current_user: UserRecord = Depends(get_current_user),
    store: VaultStore = Depends(get_vault_store)
):
    """Store or replace the (masterHash, encryptedData) pair as a whole."""
    vault = await store.save_vault(current_user.id, payload.masterHash, payload.encryptedData)
    return VaultSavedResponse(message="Saved", updatedAt=vault.updated_at)


@router.put("/master", response_model=VaultSavedResponse)
async def update_master(
    payload: VaultPayload,
    request: Request,
    current_user: UserRecord = Depends(get_current_user),
    store: VaultStore = Depends(get_vault_store)
):
    """
    Rotate the master-password verifier, together with the re-encrypted
    blob when one is sent. Omitting encryptedData keeps the stored blob.
    """
    replace_data = "encryptedData" in payload.model_fields_set
    vault = await store.update_master(
        current_user.id,
        payload.masterHash,
        payload.encryptedData,
        replace_data=replace_data
    )

    await log_security_event(
        "master_password_rotated",
        True,
        user_id=current_user.id,
        ip_address=get_client_ip(request),
        details={"blob_replaced": replace_data}
    )

    return VaultSavedResponse(message="Master password changed", updatedAt=vault.updated_at)


@router.delete("", response_model=MessageResponse)
async def delete_vault(
    request: Request,
    current_user: UserRecord = Depends(get_current_user),
    store: VaultStore = Depends(get_vault_store)
):
    """Erase the vault (reset)."""
    await store.delete_vault(current_user.id)

    await log_security_event(
        "vault_reset",
        True,
        user_id=current_user.id,
        ip_address=get_client_ip(request)
    )

    return MessageResponse(message="Vault reset")
