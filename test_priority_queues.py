import random

import pytest

import priority_queues as pq
from priority_queues import (
    BinomialHeapPriorityQueue,
    EmptyQueueError,
    Entry,
    IMPLEMENTATIONS,
    TreeNode,
    add_trees,
    merge,
    merge_trees,
)


@pytest.fixture(autouse=True)
def seeded_random():
    random.seed(20241128)


@pytest.fixture(params=IMPLEMENTATIONS, ids=lambda cls: cls.__name__)
def queue(request):
    return request.param()


def forest_of(*entries):
    '''Build a forest by enqueueing (value, priority) pairs.'''

    queue = BinomialHeapPriorityQueue()
    for value, priority in entries:
        queue.enqueue(value, priority)
    return queue._forest


# Entry ordering

def test_entry_orders_by_priority_then_value():
    assert Entry('z', 1) < Entry('a', 2)
    assert Entry('a', 3) < Entry('b', 3)
    assert Entry('a', 3) == Entry('a', 3)
    assert Entry('b', 3) >= Entry('b', 3)
    assert not Entry('b', 3) < Entry('b', 3)
    assert Entry('a', 3).item() == (3, 'a')


def test_entry_rejects_bool_priority():
    with pytest.raises(AssertionError):
        Entry('a', True)


# Shared contract

def test_round_trip_scenario(queue):
    for value, priority in [('a', 5), ('b', 3), ('c', 3), ('d', 8)]:
        queue.enqueue(value, priority)
    assert queue.peek() == 'b'
    assert queue.peek_priority() == 3
    assert [queue.dequeue() for _ in range(4)] == ['b', 'c', 'a', 'd']
    assert queue.is_empty()


@pytest.mark.parametrize('operation', ['dequeue', 'peek', 'peek_priority'])
def test_empty_queue_raises(queue, operation):
    with pytest.raises(EmptyQueueError, match='The queue is empty'):
        getattr(queue, operation)()
    assert queue.size() == 0
    assert queue.is_empty()


@pytest.mark.parametrize('operation', ['dequeue', 'peek', 'peek_priority'])
def test_drained_queue_raises(queue, operation):
    queue.enqueue('x', 1)
    queue.dequeue()
    with pytest.raises(EmptyQueueError):
        getattr(queue, operation)()
    queue.validate()
    assert queue.size() == 0


def test_empty_queue_error_is_index_error():
    assert issubclass(EmptyQueueError, IndexError)


def test_clear(queue):
    queue.clear()  # no-op on empty queue
    assert queue.is_empty()
    for i in range(13):
        queue.enqueue('v%d' % i, i % 4)
    assert len(queue) == 13
    assert queue
    queue.clear()
    queue.validate()
    assert queue.size() == 0
    assert queue.is_empty()
    assert not queue
    queue.clear()
    assert queue.size() == 0


def test_size_after_enqueues_and_dequeues(queue):
    for i in range(37):
        queue.enqueue('v', 37 - i)
    for _ in range(12):
        queue.dequeue()
    queue.validate()
    assert queue.size() == 25


def test_duplicate_entries(queue):
    for _ in range(5):
        queue.enqueue('same', 7)
    queue.enqueue('other', 7)
    assert [queue.dequeue() for _ in range(6)] == ['other'] + 5 * ['same']


def test_matches_sorted_reference(queue):
    items = pq.random_items(200)
    for priority, value in items:
        queue.enqueue(value, priority)
        queue.validate()
    assert pq.delete_all(queue) == sorted(items)


def test_repr(queue):
    queue.enqueue('a', 1)
    assert repr(queue) == '<%s size=1>' % type(queue).__name__


# Binomial forest

def test_size_is_binary_number_of_occupied_orders():
    queue = BinomialHeapPriorityQueue()
    for i in range(11):  # 0b1011
        queue.enqueue('v', i)
    assert [order for order, root in queue.roots()] == [0, 1, 3]
    assert queue.size() == 11
    queue.validate()


def test_forest_shape():
    queue = BinomialHeapPriorityQueue()
    for priority, value in pq.random_items(100):
        queue.enqueue(value, priority)
    for order, root in queue.roots():
        assert root.order() == order
        assert [child.order() for child in root.children] == list(range(order))
        assert sum(1 for node in root.all_nodes()) == 2 ** order
        assert root.height() == order + 1
        for node in root.all_nodes():
            for child in node.children:
                assert node.entry <= child.entry


def test_dequeue_trims_absent_top_slot():
    queue = BinomialHeapPriorityQueue()
    for i in range(4):
        queue.enqueue('v%d' % i, i)
    assert len(queue._forest) == 3
    queue.dequeue()  # remaining three entries need orders 0 and 1
    assert [root is not None for root in queue._forest] == [True, True]
    queue.validate()


def test_merge_trees_more_urgent_root_becomes_parent():
    urgent = TreeNode(Entry('a', 1))
    other = TreeNode(Entry('b', 1))
    assert merge_trees(other, urgent) is urgent
    assert urgent.children == [other]
    assert urgent.order() == 1


def test_merge_trees_second_tree_wins_tie():
    tree1 = TreeNode(Entry('x', 1))
    tree2 = TreeNode(Entry('x', 1))
    assert merge_trees(tree1, tree2) is tree2
    assert tree2.children == [tree1]
    assert tree1.children == []


def test_find_min_root_prefers_highest_order_on_tie():
    queue = BinomialHeapPriorityQueue()
    for _ in range(3):
        queue.enqueue('x', 1)
    order, root = queue.find_min_root()
    assert order == 1
    assert root is queue._forest[1]


def test_find_min_root_on_empty_queue():
    with pytest.raises(EmptyQueueError):
        BinomialHeapPriorityQueue().find_min_root()


def test_add_trees_no_tree():
    assert add_trees([]) == (None, None)


def test_add_trees_one_tree():
    tree = TreeNode(Entry('a', 1))
    assert add_trees([tree]) == (tree, None)


def test_add_trees_two_trees_carry():
    tree1 = TreeNode(Entry('a', 1))
    tree2 = TreeNode(Entry('b', 2))
    kept, carry = add_trees([tree1, tree2])
    assert kept is None
    assert carry is tree1
    assert carry.order() == 1


def test_add_trees_three_trees_keeps_incoming_carry():
    tree1 = TreeNode(Entry('a', 1))
    tree2 = TreeNode(Entry('b', 2))
    incoming = TreeNode(Entry('c', 0))
    kept, carry = add_trees([tree1, tree2, incoming])
    assert kept is incoming
    assert carry is tree1
    assert tree1.children == [tree2]


def test_merge_propagates_carry():
    primary = forest_of(('p', 1))
    accumulator = forest_of(('a', 2), ('b', 3), ('c', 4))
    merge(primary, accumulator)
    assert [root is not None for root in accumulator] == [False, False, True]
    assert accumulator[2].entry == Entry('p', 1)
    assert sum(1 for node in accumulator[2].all_nodes()) == 4


def test_merge_three_trees_at_one_order():
    primary = forest_of(('p', 1), ('q', 2), ('r', 5))
    accumulator = forest_of(('a', 3), ('b', 4), ('c', 6))
    order_zero = (primary[0], accumulator[0])
    merge(primary, accumulator)
    assert len(accumulator) == 3
    assert accumulator[0] is None
    # the carry out of order zero is kept at order one
    assert accumulator[1] in order_zero
    assert accumulator[1].entry == Entry('r', 5)
    assert accumulator[2].entry == Entry('p', 1)
    queue = BinomialHeapPriorityQueue()
    queue._forest = accumulator
    queue.validate()
    assert queue.size() == 6
    assert pq.delete_all(queue) == [
        (1, 'p'), (2, 'q'), (3, 'a'), (4, 'b'), (5, 'r'), (6, 'c')]


def test_merge_into_empty_forest():
    primary = forest_of(('a', 1), ('b', 2), ('c', 3))
    roots = list(primary)
    accumulator = []
    merge(primary, accumulator)
    assert accumulator == roots


def test_meld():
    queue1 = BinomialHeapPriorityQueue()
    queue2 = BinomialHeapPriorityQueue()
    for i in range(5):
        queue1.enqueue('a%d' % i, 2 * i)
        queue2.enqueue('b%d' % i, 2 * i + 1)
    assert queue1.meld(queue2) is queue1
    queue1.validate()
    assert queue2.is_empty()
    assert queue1.size() == 10
    assert [queue1.dequeue() for _ in range(4)] == ['a0', 'b0', 'a1', 'b1']


def test_latex(tmp_path):
    queue = BinomialHeapPriorityQueue()
    for i in range(6):
        queue.enqueue('v_%d' % i, i)
    filename = tmp_path / 'forest.tex'
    queue.latex(str(filename), show_keys=True)
    txt = filename.read_text()
    assert txt.startswith(r'\documentclass')
    assert txt.count(r'\begin{forest}') == 2
    assert r'0:v\_0' in txt
    assert txt.rstrip().endswith(r'\end{document}')


def test_latex_escape():
    assert pq.latex_escape('a_b&c') == r'a\_b\&c'
    assert pq.latex_escape('{x}') == r'\{x\}'


# Randomized tests

@pytest.mark.parametrize('n', [1, 2, 10, 100])
def test_sorting(n):
    pq.test_sorting(n, repeats=3)


def test_random_operations():
    pq.test_random_operations(3000)


def test_main(tmp_path, capsys):
    figure = tmp_path / 'figure.tex'
    status = pq.main(['--seed', '7', '--repeats', '1', '--operations', '200',
                      '--figure', str(figure)])
    assert status == 0
    assert figure.exists()
    assert 'random queue operations' in capsys.readouterr().out


def test_tree_height():
    queue = BinomialHeapPriorityQueue()
    for i in range(8):
        queue.enqueue('v%d' % i, i)
    (order, root), = queue.roots()
    assert order == 3
    assert root.height() == 4
    assert TreeNode(Entry('a', 1)).height() == 1


def test_peek_does_not_modify_forest():
    queue = BinomialHeapPriorityQueue()
    for i in range(5):
        queue.enqueue('v%d' % i, 5 - i)
    forest = list(queue._forest)
    assert queue.peek() == 'v4'
    assert queue.peek_priority() == 1
    assert queue._forest == forest
    assert queue.size() == 5


def test_latex_non_ascii_values(tmp_path):
    queue = BinomialHeapPriorityQueue()
    queue.enqueue('café', 1)
    queue.enqueue('über', 2)
    filename = tmp_path / 'forest.tex'
    queue.latex(str(filename), show_keys=True)
    txt = filename.read_text(encoding='utf-8')
    assert '1:café' in txt
    assert '2:über' in txt
