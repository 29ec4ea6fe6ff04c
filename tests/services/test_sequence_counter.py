"""SequenceService: locked counter rows."""

from ledger_kernel.services.sequence_service import SequenceService


class TestSequenceService:
    def test_starts_at_one(self, session):
        assert SequenceService(session).next_value("payment_number:PAY-IN-MAI") == 1

    def test_strictly_increasing(self, session):
        sequences = SequenceService(session)
        values = [sequences.next_value("s") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_names_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value("a")
        sequences.next_value("a")
        assert sequences.next_value("b") == 1

    def test_seed_used_on_creation(self, session):
        sequences = SequenceService(session)
        assert sequences.next_value("s", seed=lambda: 41) == 42

    def test_seed_ignored_once_counter_exists(self, session):
        sequences = SequenceService(session)
        sequences.next_value("s")
        calls = []

        def seed():
            calls.append(1)
            return 100

        assert sequences.next_value("s", seed=seed) == 2
        assert calls == []

    def test_negative_seed_clamped(self, session):
        assert SequenceService(session).next_value("s", seed=lambda: -5) == 1

    def test_current_value(self, session):
        sequences = SequenceService(session)
        assert sequences.current_value("s") is None
        sequences.next_value("s")
        sequences.next_value("s")
        assert sequences.current_value("s") == 2
