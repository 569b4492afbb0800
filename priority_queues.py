'''
    Priority queues over (value, priority) entries.

    Four implementations share the same contract and the same ordering
    of entries: smaller priority first, ties broken by smaller value.
    The main implementation is BinomialHeapPriorityQueue, a forest of
    binomial trees where insertion and extraction merge forests the same
    way a ripple-carry adder adds two binary numbers.  The remaining
    implementations (binary heap, sorted linked list, unsorted vector)
    use textbook algorithms and serve as oracles for the binomial heap.

    Every implementation has a validate() method that checks the
    structural integrity of the data structure with assertions.  The
    randomized tests at the end of the module call it after each
    operation.
'''


import argparse
import functools
import logging
import random


logger = logging.getLogger(__name__)


class EmptyQueueError(IndexError):
    '''Raised by dequeue, peek and peek_priority on an empty queue.'''

    def __init__(self, message='The queue is empty'):
        super().__init__(message)


######################################################################
#                              Entries
######################################################################


@functools.total_ordering
class Entry:
    '''An item (value, priority). Smaller entries are more urgent.

    Entries are ordered by priority and then by value, i.e. by the tuple
    entry.item() = (priority, value).
    '''

    __slots__ = ('value', 'priority')

    def __init__(self, value, priority):
        assert isinstance(value, str)
        assert isinstance(priority, int) and not isinstance(priority, bool)

        self.value = value
        self.priority = priority

    def item(self):
        '''Return the sort key (priority, value) of the entry.'''

        return (self.priority, self.value)

    def __eq__(self, other):
        if not isinstance(other, Entry):
            return NotImplemented
        return self.item() == other.item()

    def __lt__(self, other):
        '''Return if this entry is more urgent than other.'''

        if not isinstance(other, Entry):
            return NotImplemented
        return self.item() < other.item()

    def __hash__(self):
        return hash(self.item())

    def __repr__(self):
        return 'Entry(%r, %r)' % (self.value, self.priority)


######################################################################
#                         Queue contract
######################################################################


class PriorityQueue:
    '''Operations shared by all priority queue implementations.

    Subclasses implement enqueue(value, priority), dequeue(), peek(),
    peek_priority(), size(), clear() and validate().  dequeue, peek and
    peek_priority raise EmptyQueueError on an empty queue, without
    modifying the queue.
    '''

    def is_empty(self):
        '''Return if the queue contains no entries.'''

        return self.size() == 0

    def __len__(self):
        return self.size()

    def __bool__(self):
        return not self.is_empty()

    def __repr__(self):
        return '<%s size=%d>' % (type(self).__name__, self.size())


######################################################################
#                    Binomial heap priority queue
######################################################################


class BinomialHeapPriorityQueue(PriorityQueue):
    '''Priority queue stored as a forest of heap ordered binomial trees.

    The forest is a list where slot i is either None or the root of a
    binomial tree of order i, holding exactly 2**i entries.  The occupied
    slots are the one bits of the binary representation of the size.
    The last slot of a non-empty forest is always occupied.

    The operations enqueue, dequeue and meld take O(log n) time by
    merging forests (see merge).  peek and peek_priority scan the O(log n)
    roots.  size is recomputed from the occupied slots.
    '''

    def __init__(self):
        '''Initialize a new empty queue.'''

        self._forest = []

    def enqueue(self, value, priority):
        '''Insert the item (value, priority) into the queue.'''

        merge([TreeNode(Entry(value, priority))], self._forest)

    def dequeue(self):
        '''Remove the most urgent entry and return its value.'''

        order, root = self.find_min_root()
        logger.debug('Dequeue root of order %d', order)
        self._forest[order] = None
        trim(self._forest)
        merge(root.detach_children(), self._forest)
        return root.entry.value

    def peek(self):
        '''Return the value of the most urgent entry.'''

        _, root = self.find_min_root()
        return root.entry.value

    def peek_priority(self):
        '''Return the priority of the most urgent entry.'''

        _, root = self.find_min_root()
        return root.entry.priority

    def is_empty(self):
        return not self._forest

    def size(self):
        '''Return the number of entries, i.e. sum of 2**i for occupied i.'''

        return sum(1 << order for order, root in self.roots())

    def clear(self):
        '''Remove all entries.'''

        logger.debug('Clear forest with %d slots', len(self._forest))
        self._forest = []

    def meld(self, other):
        '''Move all entries of another binomial queue into this queue.'''

        assert isinstance(other, BinomialHeapPriorityQueue)
        assert other is not self

        logger.debug('Meld forests with %d and %d slots',
                     len(self._forest), len(other._forest))
        merge(other._forest, self._forest)
        other._forest = []
        return self

    def roots(self):
        '''Generator to yield (order, root) for all trees in the forest.'''

        for order, root in enumerate(self._forest):
            if root is not None:
                yield order, root

    def find_min_root(self):
        '''Return (order, root) for the root with the most urgent entry.

        On ties the root of the highest order wins.
        '''

        best = None
        for order, root in self.roots():
            if best is None or best[1].entry >= root.entry:
                best = (order, root)
        if best is None:
            raise EmptyQueueError()
        return best

    ##################################################################
    #                       Validation methods
    ##################################################################

    def validate(self):
        '''Validate forest shape and heap order.'''

        def validate_tree(node, order, seen):
            '''Recursive validation of a binomial tree of the given order.'''

            assert id(node) not in seen  # trees never share nodes
            seen.add(id(node))
            assert isinstance(node.entry, Entry)
            assert node.order() == order
            size = 1
            for child_order, child in enumerate(node.children):
                assert node.entry <= child.entry  # heap order
                size += validate_tree(child, child_order, seen)
            assert size == 1 << order
            return size

        forest = self._forest
        assert isinstance(forest, list)
        assert not forest or forest[-1] is not None
        seen = set()
        nodes = 0
        for order, root in self.roots():
            nodes += validate_tree(root, order, seen)
            assert root.height() == order + 1
        assert nodes == self.size()
        assert self.is_empty() == (nodes == 0)

    ##################################################################
    #                        Save forest as LaTeX
    ##################################################################

    def latex(self, filename='forest_figure.tex', show_keys=False):
        '''Save the forest as a LaTeX figure using the forest package.'''

        assert not self.is_empty()

        def traverse(node, indent=0):
            '''Convert subtree rooted at node to LaTeX with indentation.'''

            if show_keys:
                txt = '{' + latex_escape('%d:%s' % node.entry.item()) + '}'
            else:
                txt = '{}'
            if not node.children:
                return ' ' * indent + '[ ' + txt + ' ]\n'
            txt = ' ' * indent + '[ ' + txt + '\n'
            for child in node.children:
                txt += traverse(child, indent + 2)
            return txt + ' ' * indent + ']\n'

        trees = ''
        for order, root in reversed(list(self.roots())):
            trees += (r'\begin{forest}' + '\n'
                      + '  binomial tree,\n'
                      + traverse(root, 2)
                      + r'\end{forest}' + '\n'
                      + r'\quad' + '\n')

        txt = r'''\documentclass[margin=15pt]{standalone}
\usepackage{forest}
\begin{document}
\forestset{binomial tree/.style={
    for tree={draw, circle, font=\scriptsize,
      minimum size=16pt, inner sep=1pt, anchor=center,
      l=25pt, s sep=10pt, edge=solid}
  }
}
''' + trees + r'''\end{document}
'''
        with open(filename, 'w', encoding='utf-8') as file:
            print(txt, file=file)


def latex_escape(text):
    '''Escape LaTeX special characters in text.'''

    replacements = {
        '\\': r'\textbackslash{}',
        '{': r'\{', '}': r'\}', '_': r'\_', '&': r'\&', '%': r'\%',
        '$': r'\$', '#': r'\#', '^': r'\^{}', '~': r'\~{}',
    }
    return ''.join(replacements.get(char, char) for char in text)


######################################################################
#                          Tree nodes
######################################################################


class TreeNode:
    '''A node of a binomial tree. Owns the list of its children.

    The children of a root of order k are roots of binomial trees of
    orders 0, 1, ..., k - 1, in this order.
    '''

    __slots__ = ('entry', 'children')

    def __init__(self, entry):
        '''Create a tree of order zero.'''

        self.entry = entry
        self.children = []

    def order(self):
        return len(self.children)

    def add_child(self, child):
        '''Add child as the child of highest order.'''

        assert child is not self
        assert child.order() == self.order()

        self.children.append(child)

    def detach_children(self):
        '''Remove and return the children. They form a valid forest.'''

        children = self.children
        self.children = []
        return children

    def all_nodes(self):
        '''Generator to yield all nodes in subtree rooted at node.'''

        yield self
        for child in self.children:
            yield from child.all_nodes()

    def height(self):
        '''Return height of subtree rooted at node.'''

        return 1 + max((child.height() for child in self.children), default=0)

    def __repr__(self):
        return 'TreeNode(%r, order=%d)' % (self.entry, self.order())


######################################################################
#                          Forest merging
######################################################################


def merge_trees(tree1, tree2):
    '''Link two trees of equal order k into one tree of order k + 1.

    The less urgent root becomes the last child of the other root.  If the
    roots are equal, tree2 becomes the parent.  Returns the new root.
    '''

    assert tree1 is not tree2
    assert tree1.order() == tree2.order()

    if tree1.entry >= tree2.entry:
        tree2.add_child(tree1)
        return tree2
    else:
        tree1.add_child(tree2)
        return tree1


def add_trees(trees):
    '''Add the trees present at one order, like adding bits with a carry.

    trees contains the present trees among (primary, accumulator, carry),
    in this order.  Returns (tree kept at this order, carry to next order),
    where both can be None.  With three trees the incoming carry is kept.
    '''

    assert len(trees) <= 3

    if len(trees) == 0:
        return None, None
    if len(trees) == 1:
        return trees[0], None
    if len(trees) == 2:
        return None, merge_trees(trees[0], trees[1])
    return trees[2], merge_trees(trees[0], trees[1])


def slot(forest, order):
    '''Return the tree of the given order in forest, None if absent.'''

    return forest[order] if order < len(forest) else None


def trim(forest):
    '''Remove trailing absent slots from forest.'''

    while forest and forest[-1] is None:
        forest.pop()


def merge(primary, accumulator):
    '''Merge forest primary into forest accumulator (in place).

    Walks the orders from zero and upwards, threading the carry tree from
    each order to the next.  The trees of primary become owned by
    accumulator.
    '''

    assert primary is not accumulator

    merged = []
    carry = None
    for order in range(max(len(primary), len(accumulator))):
        trees = [tree for tree in (slot(primary, order),
                                   slot(accumulator, order),
                                   carry)
                 if tree is not None]
        tree, carry = add_trees(trees)
        merged.append(tree)
    if carry is not None:
        merged.append(carry)
    trim(merged)
    accumulator[:] = merged


######################################################################
#                   Binary heap priority queue
######################################################################


class HeapPriorityQueue(PriorityQueue):
    '''Binary heap stored in a list, with the root at index 1.

    The children of index i are at indexes 2 * i and 2 * i + 1.
    '''

    def __init__(self):
        self._heap = [None]  # index 0 unused

    def enqueue(self, value, priority):
        self._heap.append(Entry(value, priority))
        self.percolate_up(len(self._heap) - 1)

    def dequeue(self):
        entry = self._min_entry()
        last = self._heap.pop()
        if len(self._heap) > 1:
            self._heap[1] = last
            self.trickle_down(1)
        return entry.value

    def peek(self):
        return self._min_entry().value

    def peek_priority(self):
        return self._min_entry().priority

    def size(self):
        return len(self._heap) - 1

    def clear(self):
        self._heap = [None]

    def _min_entry(self):
        if len(self._heap) == 1:
            raise EmptyQueueError()
        return self._heap[1]

    def percolate_up(self, index):
        '''Move entry at index up while it is more urgent than its parent.'''

        heap = self._heap
        while index > 1 and heap[index] < heap[index // 2]:
            heap[index], heap[index // 2] = heap[index // 2], heap[index]
            index //= 2

    def trickle_down(self, index):
        '''Move entry at index down while a child is more urgent.'''

        heap = self._heap
        size = len(heap) - 1
        while True:
            left, right = 2 * index, 2 * index + 1
            if left > size:
                return
            child = left
            if right <= size and heap[left] > heap[right]:
                child = right
            if not heap[child] < heap[index]:
                return
            heap[index], heap[child] = heap[child], heap[index]
            index = child

    def validate(self):
        '''Validate heap order of the list.'''

        heap = self._heap
        assert heap[0] is None
        for index in range(2, len(heap)):
            assert isinstance(heap[index], Entry)
            assert heap[index // 2] <= heap[index]


######################################################################
#                 Sorted linked list priority queue
######################################################################


class ListNode:
    '''Node of a doubly linked list.'''

    __slots__ = ('entry', 'prev', 'next')

    def __init__(self, entry=None):
        self.entry = entry
        self.prev = None
        self.next = None


class LinkedPriorityQueue(PriorityQueue):
    '''Doubly linked list sorted by urgency, behind a sentinel head node.

    enqueue takes O(n) time, dequeue O(1) time.  Equal entries are kept
    in insertion order.
    '''

    def __init__(self):
        self._head = ListNode()

    def enqueue(self, value, priority):
        new_node = ListNode(Entry(value, priority))
        prev = self._head
        while prev.next is not None and not new_node.entry < prev.next.entry:
            prev = prev.next
        new_node.prev = prev
        new_node.next = prev.next
        if prev.next is not None:
            prev.next.prev = new_node
        prev.next = new_node

    def dequeue(self):
        node = self._first()
        self._head.next = node.next
        if node.next is not None:
            node.next.prev = self._head
        node.next = node.prev = None
        return node.entry.value

    def peek(self):
        return self._first().entry.value

    def peek_priority(self):
        return self._first().entry.priority

    def is_empty(self):
        return self._head.next is None

    def size(self):
        count = 0
        node = self._head.next
        while node is not None:
            count += 1
            node = node.next
        return count

    def clear(self):
        self._head.next = None

    def _first(self):
        if self._head.next is None:
            raise EmptyQueueError()
        return self._head.next

    def validate(self):
        '''Validate links and sorted order of the list.'''

        head = self._head
        assert head.prev is None and head.entry is None
        node = head
        while node.next is not None:
            assert node.next.prev is node
            if node is not head:
                assert node.entry <= node.next.entry
            node = node.next


######################################################################
#                Unsorted vector priority queue
######################################################################


class VectorPriorityQueue(PriorityQueue):
    '''Unsorted list of entries. enqueue is O(1), dequeue O(n).'''

    def __init__(self):
        self._entries = []

    def enqueue(self, value, priority):
        self._entries.append(Entry(value, priority))

    def dequeue(self):
        return self._entries.pop(self.urgent_index()).value

    def peek(self):
        return self._entries[self.urgent_index()].value

    def peek_priority(self):
        return self._entries[self.urgent_index()].priority

    def size(self):
        return len(self._entries)

    def clear(self):
        self._entries = []

    def urgent_index(self):
        '''Return the first index holding the most urgent entry.'''

        if not self._entries:
            raise EmptyQueueError()
        best = 0
        for index, entry in enumerate(self._entries):
            if entry < self._entries[best]:
                best = index
        return best

    def validate(self):
        assert all(isinstance(entry, Entry) for entry in self._entries)


IMPLEMENTATIONS = (
    BinomialHeapPriorityQueue,
    HeapPriorityQueue,
    LinkedPriorityQueue,
    VectorPriorityQueue,
)


######################################################################
#                          Test methods
######################################################################


def swap(L, i, j):
    '''Swap entries L[i] and L[j].'''

    L[i], L[j] = L[j], L[i]


def pop_random(L):
    '''Remove a random element from L (by swapping with last element).'''

    swap(L, -1, random.randint(0, len(L) - 1))
    return L.pop()


def random_items(n, distinct=False):
    '''Returns a list of n random (priority, value) items.

    Values are drawn from a small alphabet, so equal priorities and equal
    entries are common unless distinct is True.
    '''

    if distinct:
        return [(priority, 'v%d' % priority)
                for priority in random.sample(range(1, 3 * n), n)]
    else:
        return [(random.randint(1, n), random.choice('abc'))
                for _ in range(n)]


def delete_all(queue):
    '''Create sorted list with all items from queue by n x dequeue.'''

    sorted_sequence = []
    while not queue.is_empty():
        item = (queue.peek_priority(), queue.peek())
        queue.validate()
        assert queue.dequeue() == item[1]
        sorted_sequence.append(item)
        queue.validate()
    assert queue.size() == 0
    queue.validate()
    return sorted_sequence


def test_sorting_insert(n=100):
    '''Sort using n x enqueue and n x dequeue, for all implementations.'''

    items = random_items(n)
    for implementation in IMPLEMENTATIONS:
        queue = implementation()
        queue.validate()
        for priority, value in items:
            queue.enqueue(value, priority)
            queue.validate()
        assert queue.size() == n
        assert delete_all(queue) == sorted(items)


def test_sorting_meld(n=100):
    '''Sort using (n - 1) x meld in random order and n x dequeue.'''

    items = random_items(n)
    queues = []
    # Create n queues with one item
    for priority, value in items:
        queue = BinomialHeapPriorityQueue()
        queue.enqueue(value, priority)
        queue.validate()
        queues.append(queue)
    # Repeatedly meld two random queues until one queue remains
    while len(queues) >= 2:
        queue1 = pop_random(queues)
        queue2 = pop_random(queues)
        queue = queue1.meld(queue2)
        queue.validate()
        assert queue2.is_empty()
        queues.append(queue)
    queue = queues.pop()
    assert delete_all(queue) == sorted(items)


def test_sorting_interleaved(n=100, dequeue_probability=0.3):
    '''Sort with dequeues interleaved between the enqueues.'''

    items = random_items(n)
    queue = BinomialHeapPriorityQueue()
    pending = []  # enqueued but not dequeued items
    output = []
    for priority, value in items:
        queue.enqueue(value, priority)
        pending.append((priority, value))
        queue.validate()
        if random.random() < dequeue_probability:
            item = min(pending)
            assert queue.dequeue() == item[1]
            pending.remove(item)
            output.append(item)
            queue.validate()
        assert queue.size() == len(pending)
    output += delete_all(queue)
    assert sorted(output) == sorted(items)


def test_sorting(n=10, repeats=10):
    '''Run all sorting tests repeats times for n items.'''

    print('Sorting n =', n, end=' ', flush=True)
    for _ in range(1, repeats + 1):
        print('.', end='', flush=True)
        test_sorting_insert(n)
        test_sorting_meld(n)
        test_sorting_interleaved(n)
    print()


def test_random_operations(n=2000):
    '''Test a random sequence of n operations on all implementations.

    All implementations see the same operations and must agree with each
    other, and with a plain list S of the (priority, value) items.
    '''

    print(n, 'random queue operations ', end='', flush=True)
    queues = [implementation() for implementation in IMPLEMENTATIONS]
    binomial = queues[0]
    S = []
    for iteration in range(1, n + 1):
        if iteration % 100 == 0:
            print('.', end='', flush=True)
        p = random.random()
        if p < 0.02:  # clear
            for queue in queues:
                queue.clear()
            S = []
        elif p < 0.07:  # meld a small binomial queue into the binomial queue
            other = BinomialHeapPriorityQueue()
            for priority, value in random_items(random.randint(0, 10)):
                other.enqueue(value, priority)
                for queue in queues[1:]:
                    queue.enqueue(value, priority)
                S.append((priority, value))
            binomial.meld(other)
        elif p < 0.6:  # enqueue
            priority = random.randint(1, 50)
            value = random.choice('abcd')
            for queue in queues:
                queue.enqueue(value, priority)
            S.append((priority, value))
        elif S:  # dequeue
            item = min(S)
            for queue in queues:
                assert queue.peek_priority() == item[0]
                assert queue.peek() == item[1]
                assert queue.dequeue() == item[1]
            S.remove(item)
        else:  # dequeue from empty queues
            for queue in queues:
                try:
                    queue.dequeue()
                except EmptyQueueError:
                    pass
                else:
                    raise AssertionError('dequeue on empty queue succeeded')
        for queue in queues:
            queue.validate()
            assert queue.size() == len(S)
            assert queue.is_empty() == (not S)
    print(' final size:', len(S))


######################################################################
#         Generation of figure illustrating a typical forest
######################################################################


def random_queue(size):
    '''Create a random binomial queue using enqueue, dequeue and meld.'''

    queues = []
    for priority, value in random_items(size, distinct=True):
        queue = BinomialHeapPriorityQueue()
        queue.enqueue(value, priority)
        queues.append(queue)
    while len(queues) > 1:
        queue1 = pop_random(queues)
        queue2 = pop_random(queues)
        queues.append(queue1.meld(queue2))
    queue = queues.pop()
    for _ in range(random.randint(0, size // 4)):
        queue.dequeue()
    return queue


def generate_figure(tex_file='forest-figure.tex'):
    '''Create latex document with figure showing a binomial forest.

    The generated forest satisfies the following requirements:

      - The forest has at least three trees.
      - At least one tree has height five or more.
    '''

    print('Trying to create an illustrative forest ', end='', flush=True)
    while True:
        queue = random_queue(40)
        roots = [root for order, root in queue.roots()]
        if len(roots) < 3 or max(root.height() for root in roots) < 5:
            print('.', end='', flush=True)
            continue
        break
    print(' saving', tex_file)
    queue.latex(tex_file, show_keys=True)


######################################################################
#                               Main
######################################################################


def main(argv=None):
    '''Run the randomized tests. Returns the exit status.'''

    parser = argparse.ArgumentParser(
        description='Randomized tests of the priority queue implementations.')
    parser.add_argument('--seed', type=int, default=None,
                        help='seed for the random number generator')
    parser.add_argument('--repeats', type=int, default=10,
                        help='repetitions of the sorting tests')
    parser.add_argument('--operations', type=int, default=10000,
                        help='length of the random operation sequence')
    parser.add_argument('--figure', metavar='FILE', default=None,
                        help='save LaTeX figure of a random forest to FILE')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='logging level (default: %(default)s)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(levelname)s %(name)s: %(message)s')
    if args.seed is not None:
        random.seed(args.seed)

    test_sorting(1, args.repeats)
    test_sorting(10, 10 * args.repeats)
    test_sorting(100, args.repeats)
    test_random_operations(args.operations)
    if args.figure is not None:
        generate_figure(args.figure)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
