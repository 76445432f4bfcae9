"""
Reset the review database.

DANGEROUS: This deletes all review history!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_review_db
"""

from recall.srs.database import get_store, is_test_mode


def main():
    print("=" * 60)
    print("WARNING: Reset Review Database")
    print("=" * 60)
    print()
    print("This will DELETE all review history:")
    print("  - All review states (easiness, intervals, ladder stages)")
    print("  - All review events (logs of past reviews)")
    print("  - All learner notification profiles")
    print()
    if is_test_mode():
        print("(TEST_MODE is on: the test database will be reset)")
        print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        get_store().reset_db()
        print("✓ Database reset complete!")
        print("\nThe database now has empty tables ready for new reviews.")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
