"""
End-to-end walkthrough against a running server:
register, set a master password, add entries, lock, unlock, rotate, export.
"""
import sys
import time

from lockbox_client.api_client import VaultApiClient
from lockbox_client.crypto.device_keywrap import default_biometric_unlock
from lockbox_client.crypto.password_generator import generate_password
from lockbox_client.errors import AuthFailure, InputError, LockboxError
from lockbox_client.session import VaultSession

MASTER_PASSWORD = "correct horse battery"


def step(title: str):
    print(f"\n{'='*60}")
    print(title)
    print(f"{'='*60}")


def run(email: str, account_password: str):
    api = VaultApiClient()
    biometric = default_biometric_unlock()
    session = VaultSession(api, biometric=biometric, auto_lock_seconds=0)

    step("STEP 1: ACCOUNT")
    try:
        api.register(email, account_password)
        print(f"Registered {email}")
    except LockboxError as e:
        print(f"Register failed ({e}), trying login")
        api.login(email, account_password)
        print(f"Logged in as {email}")

    step("STEP 2: MASTER PASSWORD")
    session.load()
    if session.needs_setup:
        try:
            session.setup("abc")
        except InputError as e:
            print(f"Rejected before any crypto: {e}")
        session.setup(MASTER_PASSWORD)
        print("Master password set, empty vault saved")
    else:
        session.unlock(MASTER_PASSWORD)
        print(f"Unlocked existing vault ({len(session.entries)} entries)")

    print(f"Biometric unlock supported on this device: {biometric.is_supported()}")

    step("STEP 3: ADD ENTRIES")
    for site, user in [("github.com", "octocat"), ("example.org", "me@example.org")]:
        entry = session.add_entry(site, generate_password(20), username=user)
        print(f"  + {entry.siteName} ({entry.username}) id={entry.id}")

    step("STEP 4: LOCK / UNLOCK")
    session.lock()
    print(f"Locked: unlocked={session.is_unlocked}")
    try:
        session.unlock("wrong password")
    except AuthFailure as e:
        print(f"Wrong password rejected: {e}")
    session.unlock(MASTER_PASSWORD)
    print(f"Unlocked, {len(session.entries)} entries:")
    for entry in session.entries:
        print(f"  • {entry.siteName} / {entry.username}")

    step("STEP 5: ROTATE MASTER PASSWORD")
    rotated = MASTER_PASSWORD + " staple"
    session.change_master_password(rotated, confirm=rotated)
    session.lock()
    session.unlock(rotated)
    print(f"Rotated and unlocked with the new master password ({len(session.entries)} entries)")
    session.change_master_password(MASTER_PASSWORD)
    print("Rotated back to the original master password")

    step("STEP 6: EXPORT")
    path = session.export_backup(f"lockbox-demo-{int(time.time())}.json")
    print(f"Encrypted backup written to {path}")

    session.lock()
    print("\nDemo complete. The server only ever saw the master hash and the encrypted blob.")


def main():
    if len(sys.argv) != 3:
        print("usage: lockbox-demo EMAIL ACCOUNT_PASSWORD")
        sys.exit(2)
    try:
        run(sys.argv[1], sys.argv[2])
    except LockboxError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
