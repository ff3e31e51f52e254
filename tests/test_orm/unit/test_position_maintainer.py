"""位置维护器 PositionMaintainer 测试

使用 MemorySequenceStore，不依赖数据库：
1. 创建时分配位置
2. 移动平移
3. 删除收紧
4. 交换及其原子性
5. 分组独立、边界校验、插入、重新编号
6. 序列加锁、没有位置的记录
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from yposition.orm.position import (
    MemorySequenceStore,
    PositionAccessor,
    PositionConfig,
    PositionMaintainer,
    PositionNotAssignedError,
    PositionOutOfRangeError,
    SequenceMismatchError,
    without_position_events,
)


@dataclass(eq=False)
class Card:
    """看板卡片，board 为分组字段"""
    name: str
    board: int = 1
    position: Optional[int] = None


class FlakyStore(MemorySequenceStore):
    """第 fail_on 次写入时抛出异常的存储"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on = None
        self.writes = 0

    def persist(self, record):
        if self.fail_on is not None:
            self.writes += 1
            if self.writes == self.fail_on:
                raise RuntimeError("write failed")
        super().persist(record)


class CountingLockStore(MemorySequenceStore):
    """记录 lock 调用次数的存储"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.locks = 0

    def lock(self, record):
        self.locks += 1


def make_maintainer(store_class=MemorySequenceStore, **config):
    store = store_class(PositionAccessor.for_fields("position", scope=("board",)))
    return PositionMaintainer(store, PositionConfig(scope=("board",), **config))


def layout(maintainer, record):
    """(名称, 位置) 列表，按位置排序"""
    return [(card.name, card.position) for card in maintainer.ordered(record)]


def assert_contiguous(maintainer, record):
    initial = maintainer.config.initial_position
    positions = [card.position for card in maintainer.ordered(record)]
    assert positions == list(range(initial, initial + len(positions)))


class TestAssignOnCreate:
    """创建时分配位置"""

    def test_first_record_gets_initial_position(self):
        maintainer = make_maintainer()
        card = maintainer.create(Card("A"))
        assert card.position == 0

    def test_records_append_to_end(self):
        maintainer = make_maintainer()
        cards = [maintainer.create(Card(name)) for name in "ABC"]
        assert [c.position for c in cards] == [0, 1, 2]

    def test_custom_initial_position(self):
        maintainer = make_maintainer(initial_position=1)
        cards = [maintainer.create(Card(name)) for name in "AB"]
        assert [c.position for c in cards] == [1, 2]

    def test_explicit_position_is_kept(self):
        maintainer = make_maintainer()
        maintainer.create(Card("A"))
        card = maintainer.create(Card("B", position=7))
        assert card.position == 7

    def test_next_position_follows_max(self):
        maintainer = make_maintainer()
        maintainer.create(Card("A"))
        maintainer.create(Card("B", position=4))
        assert maintainer.next_position(Card("Z")) == 5

    def test_next_position_on_empty_sequence(self):
        maintainer = make_maintainer(initial_position=3)
        assert maintainer.next_position(Card("Z")) == 3

    def test_assign_next_position_skips_positioned_record(self):
        maintainer = make_maintainer()
        card = Card("A", position=2)
        assert maintainer.assign_next_position(card) is False
        assert card.position == 2

    def test_scopes_are_numbered_independently(self):
        maintainer = make_maintainer()
        a1 = maintainer.create(Card("A", board=1))
        b1 = maintainer.create(Card("B", board=1))
        a2 = maintainer.create(Card("A", board=2))
        assert (a1.position, b1.position, a2.position) == (0, 1, 0)

    def test_before_insert_is_suppressed(self):
        maintainer = make_maintainer()
        card = Card("A")
        with without_position_events():
            assert maintainer.before_insert(card) is False
        assert card.position is None


class TestMove:
    """移动平移"""

    @pytest.fixture
    def cards(self):
        self.maintainer = make_maintainer()
        return {name: self.maintainer.create(Card(name)) for name in "ABCDE"}

    def test_move_forward_shifts_range_back(self, cards):
        assert self.maintainer.move(cards["B"], 3) is True
        assert layout(self.maintainer, cards["A"]) == [
            ("A", 0), ("C", 1), ("D", 2), ("B", 3), ("E", 4)
        ]

    def test_move_backward_shifts_range_forward(self, cards):
        self.maintainer.move(cards["D"], 1)
        assert layout(self.maintainer, cards["A"]) == [
            ("A", 0), ("D", 1), ("B", 2), ("C", 3), ("E", 4)
        ]

    def test_move_to_same_position_returns_false(self, cards):
        assert self.maintainer.move(cards["C"], 2) is False
        assert_contiguous(self.maintainer, cards["A"])

    def test_move_out_of_range_raises(self, cards):
        with pytest.raises(PositionOutOfRangeError) as exc_info:
            self.maintainer.move(cards["A"], 5)
        assert (exc_info.value.lower, exc_info.value.upper) == (0, 4)
        assert layout(self.maintainer, cards["A"])[0] == ("A", 0)

    def test_move_below_initial_raises(self, cards):
        with pytest.raises(PositionOutOfRangeError):
            self.maintainer.move(cards["C"], -1)

    def test_move_without_bounds_validation(self):
        maintainer = make_maintainer(validate_bounds=False)
        a, b = maintainer.create(Card("A")), maintainer.create(Card("B"))
        maintainer.move(a, 10)
        assert (a.position, b.position) == (10, 0)

    def test_move_unassigned_record_raises(self):
        maintainer = make_maintainer()
        with pytest.raises(PositionNotAssignedError):
            maintainer.move(Card("A"), 0)

    def test_move_to_start_and_end(self, cards):
        assert self.maintainer.move_to_start(cards["C"]) is True
        assert self.maintainer.move_to_end(cards["A"]) is True
        assert [name for name, _ in layout(self.maintainer, cards["A"])] == list("CBDEA")
        assert_contiguous(self.maintainer, cards["A"])

    def test_move_to_end_when_already_last(self, cards):
        assert self.maintainer.move_to_end(cards["E"]) is False

    def test_move_up_and_down(self, cards):
        assert self.maintainer.move_up(cards["C"]) is True
        assert self.maintainer.move_down(cards["A"]) is True
        assert [name for name, _ in layout(self.maintainer, cards["A"])] == list("CABDE")

    def test_move_up_at_start_returns_false(self, cards):
        assert self.maintainer.move_up(cards["A"]) is False
        assert self.maintainer.move_down(cards["E"]) is False

    def test_previous_and_next(self, cards):
        assert self.maintainer.previous(cards["C"]) is cards["B"]
        assert self.maintainer.next(cards["C"]) is cards["D"]
        assert self.maintainer.previous(cards["A"]) is None
        assert self.maintainer.next(cards["E"]) is None

    def test_before_update_is_suppressed(self, cards):
        cards["A"].position = 3
        with without_position_events():
            assert self.maintainer.before_update(cards["A"], 0) == 0
        assert cards["D"].position == 3


class TestDelete:
    """删除收紧"""

    def test_delete_shifts_following_records(self):
        maintainer = make_maintainer()
        cards = {name: maintainer.create(Card(name)) for name in "ABCDE"}
        assert maintainer.delete(cards["C"]) == 2
        assert layout(maintainer, cards["A"]) == [("A", 0), ("B", 1), ("D", 2), ("E", 3)]

    def test_delete_second_of_four(self):
        maintainer = make_maintainer()
        cards = {name: maintainer.create(Card(name)) for name in "ABCD"}
        maintainer.delete(cards["B"])
        assert layout(maintainer, cards["A"]) == [("A", 0), ("C", 1), ("D", 2)]

    def test_delete_last_record_shifts_nothing(self):
        maintainer = make_maintainer()
        cards = [maintainer.create(Card(name)) for name in "AB"]
        assert maintainer.delete(cards[1]) == 0
        assert layout(maintainer, cards[0]) == [("A", 0)]

    def test_delete_leaves_other_scope_untouched(self):
        maintainer = make_maintainer()
        first = [maintainer.create(Card(name, board=1)) for name in "AB"]
        other = [maintainer.create(Card(name, board=2)) for name in "XYZ"]
        maintainer.delete(first[0])
        assert [c.position for c in other] == [0, 1, 2]
        assert first[1].position == 0


class TestSwap:
    """交换"""

    def test_swap_exchanges_positions(self):
        maintainer = make_maintainer()
        a, b, c = (maintainer.create(Card(name)) for name in "ABC")
        maintainer.swap(a, c)
        assert (a.position, b.position, c.position) == (2, 1, 0)

    def test_swap_with_self_is_noop(self):
        maintainer = make_maintainer()
        a = maintainer.create(Card("A"))
        maintainer.swap(a, a)
        assert a.position == 0

    def test_swap_across_scopes_raises(self):
        maintainer = make_maintainer()
        a = maintainer.create(Card("A", board=1))
        x = maintainer.create(Card("X", board=2))
        with pytest.raises(SequenceMismatchError):
            maintainer.swap(a, x)

    def test_swap_unassigned_raises(self):
        maintainer = make_maintainer()
        a = maintainer.create(Card("A"))
        with pytest.raises(PositionNotAssignedError):
            maintainer.swap(a, Card("B"))

    def test_swap_is_atomic(self):
        maintainer = make_maintainer(FlakyStore)
        a, b, c = (maintainer.create(Card(name)) for name in "ABC")
        maintainer.store.fail_on = 2

        with pytest.raises(RuntimeError):
            maintainer.swap(a, c)

        assert (a.position, b.position, c.position) == (0, 1, 2)


class TestInsertAndNormalize:
    """插入与重新编号"""

    def test_insert_at_shifts_following(self):
        maintainer = make_maintainer()
        a, b = maintainer.create(Card("A")), maintainer.create(Card("B"))
        x = maintainer.insert_at(Card("X"), 1)
        assert layout(maintainer, a) == [("A", 0), ("X", 1), ("B", 2)]
        assert x.position == 1

    def test_insert_at_end_is_allowed(self):
        maintainer = make_maintainer()
        a = maintainer.create(Card("A"))
        maintainer.insert_at(Card("X"), 1)
        assert layout(maintainer, a) == [("A", 0), ("X", 1)]

    def test_insert_at_out_of_range_raises(self):
        maintainer = make_maintainer()
        maintainer.create(Card("A"))
        with pytest.raises(PositionOutOfRangeError):
            maintainer.insert_at(Card("X"), 2)
        assert len(maintainer.store.records) == 1

    def test_normalize_closes_gaps(self):
        maintainer = make_maintainer()
        with without_position_events():
            cards = [maintainer.create(Card(name, position=pos)) for name, pos in zip("ABC", (2, 9, 5))]
        assert maintainer.normalize(cards[0]) == 3
        assert layout(maintainer, cards[0]) == [("A", 0), ("C", 1), ("B", 2)]

    def test_normalize_contiguous_sequence_changes_nothing(self):
        maintainer = make_maintainer()
        cards = [maintainer.create(Card(name)) for name in "ABC"]
        assert maintainer.normalize(cards[0]) == 0


class TestContiguity:
    """混合操作后位置仍然连续"""

    def test_mixed_operations_keep_sequence_contiguous(self):
        maintainer = make_maintainer(initial_position=1)
        cards = [maintainer.create(Card(f"card-{i}")) for i in range(8)]

        maintainer.move(cards[0], 6)
        maintainer.delete(cards[3])
        maintainer.swap(cards[1], cards[7])
        maintainer.move(cards[7], 1)
        maintainer.insert_at(Card("new"), 4)
        maintainer.delete(cards[5])
        maintainer.move_to_end(cards[2])

        assert maintainer.count(cards[0]) == 7
        assert_contiguous(maintainer, cards[0])


class TestSequenceLock:
    """lock_sequence 开启时每个写操作锁定一次序列"""

    def test_each_write_locks_once(self):
        maintainer = make_maintainer(CountingLockStore, lock_sequence=True)
        a, b, c = (maintainer.create(Card(name)) for name in "ABC")
        store = maintainer.store
        assert store.locks == 3

        maintainer.move(a, 2)
        maintainer.swap(a, b)
        maintainer.insert_at(Card("X"), 0)
        maintainer.delete(c)
        maintainer.normalize(a)
        assert store.locks == 8

    def test_lock_disabled_by_default(self):
        maintainer = make_maintainer(CountingLockStore)
        a = maintainer.create(Card("A"))
        maintainer.create(Card("B"))
        maintainer.move(a, 1)
        maintainer.lock(a)
        assert maintainer.store.locks == 0


class TestUnpositionedRecords:
    """已存储但没有位置的记录不属于序列"""

    def test_count_skips_unpositioned_records(self):
        maintainer = make_maintainer()
        a = maintainer.create(Card("A"))
        b = maintainer.create(Card("B"))
        with without_position_events():
            maintainer.create(Card("N"))
        assert maintainer.store.count(a) == 2

        with pytest.raises(PositionOutOfRangeError):
            maintainer.move(b, 2)
        assert layout(maintainer, a) == [("A", 0), ("B", 1)]

    def test_clearing_position_shifts_following_records(self):
        maintainer = make_maintainer()
        a, b, c = (maintainer.create(Card(name)) for name in "ABC")
        b.position = None
        assert maintainer.before_update(b, 1) == 1
        assert layout(maintainer, a) == [("A", 0), ("C", 1)]
        assert b.position is None
