'''
PostgreSQL storage for accounts and their vault rows.
The vault columns are opaque strings produced by the client; nothing here
parses or validates their contents.
'''
from typing import Optional

from lockbox.db.init_db import get_db_connection
from lockbox.models.records import UserRecord, VaultRecord


def _user(row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        created_at=row["created_at"],
    )


def _vault(row) -> VaultRecord:
    return VaultRecord(
        user_id=row["user_id"],
        master_hash=row["master_hash"],
        encrypted_data=row["encrypted_data"],
        updated_at=row["updated_at"],
    )


class VaultStore:
    """asyncpg-backed store. One connection per call, released in finally."""

    async def create_user(self, email: str, password_hash: str) -> Optional[UserRecord]:
        """Insert an account. Returns None if the email is already taken."""
        conn = await get_db_connection()
        try:
            row = await conn.fetchrow(
                """
                INSERT INTO users (email, password_hash)
                VALUES ($1, $2)
                ON CONFLICT (email) DO NOTHING
                RETURNING id, email, password_hash, created_at
                """,
                email, password_hash
            )
            return _user(row) if row else None
        finally:
            await conn.close()

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        conn = await get_db_connection()
        try:
            row = await conn.fetchrow(
                "SELECT id, email, password_hash, created_at FROM users WHERE email=$1",
                email
            )
            return _user(row) if row else None
        finally:
            await conn.close()

    async def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        conn = await get_db_connection()
        try:
            row = await conn.fetchrow(
                "SELECT id, email, password_hash, created_at FROM users WHERE id=$1",
                user_id
            )
            return _user(row) if row else None
        finally:
            await conn.close()

    async def get_vault(self, user_id: int) -> Optional[VaultRecord]:
        conn = await get_db_connection()
        try:
            row = await conn.fetchrow(
                """
                SELECT user_id, master_hash, encrypted_data, updated_at
                FROM vaults WHERE user_id=$1
                """,
                user_id
            )
            return _vault(row) if row else None
        finally:
            await conn.close()

    async def save_vault(self, user_id: int, master_hash: str,
                         encrypted_data: Optional[str]) -> VaultRecord:
        """Insert or replace the whole (master_hash, encrypted_data) pair."""
        conn = await get_db_connection()
        try:
            row = await conn.fetchrow(
                """
                INSERT INTO vaults (user_id, master_hash, encrypted_data)
                VALUES ($1, $2, $3)
                ON CONFLICT (user_id) DO UPDATE
                SET master_hash=EXCLUDED.master_hash,
                    encrypted_data=EXCLUDED.encrypted_data,
                    updated_at=NOW()
                RETURNING user_id, master_hash, encrypted_data, updated_at
                """,
                user_id, master_hash, encrypted_data
            )
            return _vault(row)
        finally:
            await conn.close()

    async def update_master(self, user_id: int, master_hash: str,
                            encrypted_data: Optional[str] = None,
                            replace_data: bool = False) -> VaultRecord:
        """
        Rotate the master hash in one statement. The blob is replaced only
        when replace_data is set, otherwise the stored one is kept.
        """
        conn = await get_db_connection()
        try:
            row = await conn.fetchrow(
                """
                INSERT INTO vaults (user_id, master_hash, encrypted_data)
                VALUES ($1, $2, $3)
                ON CONFLICT (user_id) DO UPDATE
                SET master_hash=EXCLUDED.master_hash,
                    encrypted_data=CASE WHEN $4 THEN EXCLUDED.encrypted_data
                                        ELSE vaults.encrypted_data END,
                    updated_at=NOW()
                RETURNING user_id, master_hash, encrypted_data, updated_at
                """,
                user_id, master_hash, encrypted_data, replace_data
            )
            return _vault(row)
        finally:
            await conn.close()

    async def delete_vault(self, user_id: int) -> bool:
        conn = await get_db_connection()
        try:
            result = await conn.execute("DELETE FROM vaults WHERE user_id=$1", user_id)
            return result != "DELETE 0"
        finally:
            await conn.close()


_store: Optional[VaultStore] = None


def get_vault_store() -> VaultStore:
    """FastAPI dependency; tests override it with an in-memory store."""
    global _store
    if _store is None:
        _store = VaultStore()
    return _store
