#!/usr/bin/env python3
"""Seed data for the Intergalactic Bank workshop

Loads:
- 4 API keys (the admin key '1234' plus three workshop keys)
- 15 accounts across the keys and all three currencies
- 7 historical transactions, two of them external deposits

Seeded balances already reflect the history, so transactions are inserted
as records only.

Run with: python -m galactic_bank.seed [--reset] [--database-url URL]
"""

import argparse
from decimal import Decimal

from .config import get_config
from .currency import Currency
from .logging_config import setup_logging, get_logger
from .models import Account, AccountType, Transaction
from .storage import LedgerStore, DuplicateRecordError, create_store


logger = get_logger("galactic_bank.seed")

API_KEYS = ['1234', 'workshop-alpha', 'workshop-beta', 'workshop-gamma']

# (id, owner, balance, currency, created_at, account_type, api_key)
ACCOUNTS = [
    # Admin key '1234'
    ('acc-001', 'Nova Newman',       '10000', 'COSMIC_COINS', '2024-06-15', 'STANDARD', '1234'),
    ('acc-002', 'Gary Galaxy',         '237', 'COSMIC_COINS', '2024-06-15', 'PREMIUM',  '1234'),
    ('acc-003', 'Luna Starlight',     '5000', 'GALAXY_GOLD',  '2024-08-20', 'BUSINESS', '1234'),
    ('acc-004', 'Cosmo Nebula',      '25000', 'MOON_BUCKS',   '2024-09-01', 'PREMIUM',  '1234'),
    ('acc-005', 'Stella Vortex',      '1500', 'COSMIC_COINS', '2024-11-10', 'STANDARD', '1234'),

    # workshop-alpha
    ('acc-006', 'Zephyr Quasar',      '8500', 'COSMIC_COINS', '2025-01-05', 'BUSINESS', 'workshop-alpha'),
    ('acc-007', 'Orion Blackhole',    '3200', 'GALAXY_GOLD',  '2025-01-05', 'STANDARD', 'workshop-alpha'),
    ('acc-008', 'Andromeda Swift',   '12000', 'MOON_BUCKS',   '2025-02-14', 'PREMIUM',  'workshop-alpha'),
    ('acc-009', 'Pulsar Pete',          '50', 'COSMIC_COINS', '2025-03-01', 'STANDARD', 'workshop-alpha'),

    # workshop-beta
    ('acc-010', 'Nebula Nightshade', '42000', 'GALAXY_GOLD',  '2025-01-20', 'BUSINESS', 'workshop-beta'),
    ('acc-011', 'Comet Blaze',        '7777', 'COSMIC_COINS', '2025-02-28', 'PREMIUM',  'workshop-beta'),
    ('acc-012', 'Meteor Dash',         '900', 'MOON_BUCKS',   '2025-03-05', 'STANDARD', 'workshop-beta'),

    # workshop-gamma
    ('acc-013', 'Supernova Singh',   '15500', 'COSMIC_COINS', '2025-01-12', 'PREMIUM',  'workshop-gamma'),
    ('acc-014', 'Eclipse Monroe',     '6100', 'GALAXY_GOLD',  '2025-02-01', 'BUSINESS', 'workshop-gamma'),
    ('acc-015', 'Asteroid Adams',      '300', 'MOON_BUCKS',   '2025-03-05', 'STANDARD', 'workshop-gamma'),
]

# (id, from, to, amount, currency, created_at)
TRANSACTIONS = [
    ('tx-001', 'acc-001', 'acc-002',  '500', 'COSMIC_COINS', '2024-07-01'),
    ('tx-002', 'acc-001', 'acc-005', '2000', 'COSMIC_COINS', '2024-12-15'),
    ('tx-003', '0',       'acc-003', '1000', 'GALAXY_GOLD',  '2024-09-15'),  # deposit
    ('tx-004', 'acc-006', 'acc-009',  '100', 'COSMIC_COINS', '2025-02-01'),
    ('tx-005', '0',       'acc-008', '5000', 'MOON_BUCKS',   '2025-02-20'),  # deposit
    ('tx-006', 'acc-010', 'acc-014', '2500', 'GALAXY_GOLD',  '2025-02-10'),
    ('tx-007', 'acc-013', 'acc-011', '3000', 'COSMIC_COINS', '2025-03-01'),
]


def seed_store(store: LedgerStore) -> dict:
    """
    Load the workshop fixture, skipping records that already exist.

    Returns:
        Counts of newly inserted keys, accounts and transactions
    """
    counts = {"api_keys": 0, "accounts": 0, "transactions": 0}

    for key in API_KEYS:
        if store.register_api_key(key):
            counts["api_keys"] += 1

    for account_id, owner, balance, currency, created_at, account_type, api_key in ACCOUNTS:
        # Soft-deleted accounts still hold their id
        try:
            store.insert_account(Account(
                account_id=account_id,
                owner=owner,
                balance=Decimal(balance).quantize(Decimal('0.01')),
                currency=Currency[currency],
                created_at=created_at,
                owner_key=api_key,
                account_type=AccountType(account_type)
            ))
        except DuplicateRecordError:
            continue
        counts["accounts"] += 1

    for transaction_id, source, destination, amount, currency, created_at in TRANSACTIONS:
        if store.get_transaction(transaction_id) is not None:
            continue
        store.insert_transaction(Transaction(
            transaction_id=transaction_id,
            from_account_id=source,
            to_account_id=destination,
            amount=Decimal(amount).quantize(Decimal('0.01')),
            currency=Currency[currency],
            created_at=created_at
        ))
        counts["transactions"] += 1

    logger.info(
        f"Seeded {counts['api_keys']} API keys, {counts['accounts']} accounts, "
        f"{counts['transactions']} transactions"
    )
    return counts


def main(argv=None) -> None:
    config = get_config()
    parser = argparse.ArgumentParser(description="Seed the Intergalactic Bank workshop data")
    parser.add_argument("--database-url", default=config.database_url,
                        help="Store to seed (defaults to GALACTIC_BANK_DATABASE_URL)")
    parser.add_argument("--reset", action="store_true",
                        help="Drop all data before seeding")
    args = parser.parse_args(argv)

    setup_logging(config.log_level, log_format=config.log_format)
    store = create_store(args.database_url, config.database_pool_min, config.database_pool_max)
    try:
        if args.reset:
            logger.info("Resetting workshop database...")
            store.reset()
        seed_store(store)
    finally:
        store.close()


if __name__ == "__main__":
    main()
