"""位置维护 Mixin 使用示例

演示 PositionMixin 的各种使用场景：
1. 整表一个序列（创建追加、移动、删除）
2. 按字段分组的序列
3. 交换与外层事务
4. 不依赖数据库的 PositionMaintainer
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# 添加项目根目录到 path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from yposition.log import setup_logger
from yposition.orm import (
    Base,
    CoreModel,
    init_database,
    transaction_manager,
    PositionFieldMixin,
    PositionMixin,
    PositionMaintainer,
    PositionAccessor,
    PositionConfig,
    MemorySequenceStore,
    PositionOutOfRangeError,
)


# ==================== 示例 1: 整表一个序列 ====================

class Slide(PositionMixin, PositionFieldMixin, CoreModel):
    """幻灯片 - 所有记录共用一个序列"""
    __tablename__ = "demo_slide"

    title: Mapped[str] = mapped_column(String(100), comment="标题")


# ==================== 示例 2: 分组序列 ====================

class MenuItem(PositionMixin, PositionFieldMixin, CoreModel):
    """菜单项 - 每个菜单一个序列，位置从 1 开始"""
    __tablename__ = "demo_menu_item"
    __position_scope__ = "menu_id"
    __position_init__ = 1

    menu_id: Mapped[int] = mapped_column(Integer, comment="所属菜单ID")
    title: Mapped[str] = mapped_column(String(100), comment="标题")


def print_slides(label: str):
    print(f"\n[{label}]")
    for slide in Slide.get_ordered():
        print(f"  {slide.position}. {slide.title}")


def print_menu(menu_id: int):
    print(f"  Menu {menu_id}:")
    for item in MenuItem.get_ordered(menu_id=menu_id):
        print(f"    {item.position}. {item.title}")


# ==================== 演示函数 ====================

def demo_single_sequence():
    """演示整表序列"""
    print("\n" + "=" * 60)
    print("Demo 1: Single Sequence (Slide)")
    print("=" * 60)

    slides = {title: Slide(title=title).save(commit=True) for title in ["Intro", "Agenda", "Demo", "Q&A"]}
    print_slides("Created")

    slides["Q&A"].move(1)
    print_slides("Move Q&A to 1")

    slides["Intro"].move_to_end()
    print_slides("Move Intro to end")

    slides["Agenda"].delete(commit=True)
    print_slides("Delete Agenda")

    Slide(title="Summary").insert_at(0)
    print_slides("Insert Summary at 0")

    try:
        slides["Demo"].move(99)
    except PositionOutOfRangeError as e:
        print(f"\n[Rejected] {e}")


def demo_grouped_sequence():
    """演示分组序列"""
    print("\n" + "=" * 60)
    print("Demo 2: Grouped Sequence (MenuItem by menu_id)")
    print("=" * 60)

    for menu_id, titles in ((1, ["Home", "Blog", "About"]), (2, ["Docs", "API"])):
        for title in titles:
            MenuItem(menu_id=menu_id, title=title).save(commit=True)

    print("\n[Initial]")
    print_menu(1)
    print_menu(2)

    about = MenuItem.query.filter_by(title="About").first()
    about.move_to_start()
    print("\n[Move About to start in menu 1]")
    print_menu(1)
    print_menu(2)


def demo_swap_and_transaction():
    """演示交换与外层事务"""
    print("\n" + "=" * 60)
    print("Demo 3: Swap and Outer Transaction")
    print("=" * 60)

    first, last = Slide.get_ordered()[0], Slide.get_ordered()[-1]
    first.swap(last)
    print_slides(f"Swap {first.title} <-> {last.title}")

    try:
        with transaction_manager.transaction(session=Slide.query.session):
            Slide.get_ordered()[0].move_down()
            raise RuntimeError("abort")
    except RuntimeError:
        pass
    print_slides("After rolled back transaction (unchanged)")


@dataclass(eq=False)
class Card:
    name: str
    position: Optional[int] = None


def demo_memory_maintainer():
    """演示不依赖数据库的维护器"""
    print("\n" + "=" * 60)
    print("Demo 4: PositionMaintainer with MemorySequenceStore")
    print("=" * 60)

    maintainer = PositionMaintainer(
        MemorySequenceStore(PositionAccessor.for_fields("position")),
        PositionConfig(initial_position=1),
    )
    cards = [maintainer.create(Card(name)) for name in ["todo", "doing", "done"]]
    maintainer.move(cards[2], 1)
    print("\n[Move done to 1]")
    for card in maintainer.ordered(cards[0]):
        print(f"  {card.position}. {card.name}")


def main():
    """主函数"""
    print("=" * 60)
    print("PositionMixin Demo")
    print("=" * 60)

    setup_logger("yposition", level="INFO", propagate=False)

    engine, session_scope = init_database("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    try:
        demo_single_sequence()
        demo_grouped_sequence()
        demo_swap_and_transaction()
        demo_memory_maintainer()

        print("\n" + "=" * 60)
        print("All demos completed successfully!")
        print("=" * 60)

    except Exception as e:
        print(f"\n[Error] {e}")
        import traceback
        traceback.print_exc()
        session_scope.rollback()
    finally:
        session_scope.remove()


if __name__ == "__main__":
    main()
