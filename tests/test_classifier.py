import unittest
import itertools
import sys
import os

# Adjust path to import dump_triage
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dump_triage.core.classifier import classify, classify_stack
from dump_triage.core.filters import Filter, FilterField, MatchKind
from dump_triage.core.stack import StackFrame


def module_filter(name):
    return Filter(FilterField.MODULE, MatchKind.EXACT, name)


class TestClassify(unittest.TestCase):
    def setUp(self):
        self.frame_a = StackFrame(module="moduleA", function="alpha")
        self.frame_b = StackFrame(module="moduleB", function="beta")
        self.frame_c = StackFrame(module="moduleC", function="gamma")

    def test_first_matching_frame_wins(self):
        """Innermost matching frame is selected even if a higher priority filter matches deeper"""
        f1 = module_filter("moduleA")
        f2 = module_filter("moduleB")
        stack = [self.frame_c, self.frame_b, self.frame_a]

        frame, matched = classify(stack, [f1, f2])

        self.assertEqual(frame, self.frame_b)
        self.assertEqual(matched, f2)

    def test_filter_order_breaks_ties_on_the_same_frame(self):
        by_module = module_filter("moduleB")
        by_function = Filter(FilterField.FUNCTION, MatchKind.EXACT, "beta")
        stack = [self.frame_b]

        self.assertEqual(classify(stack, [by_function, by_module]), (self.frame_b, by_function))
        self.assertEqual(classify(stack, [by_module, by_function]), (self.frame_b, by_module))

    def test_no_match(self):
        self.assertEqual(classify([self.frame_a, self.frame_b], [module_filter("moduleZ")]), (None, None))

    def test_empty_inputs(self):
        self.assertEqual(classify([], [module_filter("moduleA")]), (None, None))
        self.assertEqual(classify([self.frame_a], []), (None, None))
        self.assertEqual(classify([], []), (None, None))

    def test_deterministic(self):
        stack = [self.frame_c, self.frame_b, self.frame_a]
        filters = [module_filter("moduleA"), Filter(FilterField.FRAME, MatchKind.SUBSTRING, "a")]
        first = classify(stack, filters)
        for _ in range(5):
            self.assertEqual(classify(stack, filters), first)

    def test_first_match_property_over_orderings(self):
        """For every stack/filter ordering the result is the earliest frame and its earliest filter"""
        frames = [self.frame_a, self.frame_b, self.frame_c, StackFrame(module="other")]
        filters = [
            module_filter("moduleB"),
            Filter(FilterField.FUNCTION, MatchKind.SUBSTRING, "a"),
            Filter(FilterField.FRAME, MatchKind.PATTERN, "^gam"),
        ]

        for stack in itertools.permutations(frames):
            for ordered in itertools.permutations(filters):
                frame, matched = classify(list(stack), list(ordered))
                if frame is None:
                    self.assertIsNone(matched)
                    continue
                i = stack.index(frame)
                for earlier in stack[:i]:
                    self.assertFalse(any(f.matches(earlier) for f in ordered))
                self.assertEqual(matched, next(f for f in ordered if f.matches(frame)))


class TestClassifyStack(unittest.TestCase):
    def test_result_keeps_stack_and_position(self):
        crash = StackFrame(module="app.exe", function="crash", offset=0x10)
        main = StackFrame(module="app.exe", function="main", offset=0x20)
        stack = [crash, main, crash]

        result = classify_stack(stack, [Filter(FilterField.FUNCTION, MatchKind.EXACT, "crash")])

        self.assertTrue(result.matched)
        self.assertEqual(result.frame_index, 0)
        self.assertEqual(result.stack, tuple(stack))
        self.assertTrue(result.is_matched_frame(0))
        # Structurally equal frame further down is not the matched one
        self.assertFalse(result.is_matched_frame(2))

    def test_no_match_is_a_valid_result(self):
        result = classify_stack([StackFrame(module="x")], [])
        self.assertFalse(result.matched)
        self.assertIsNone(result.frame)
        self.assertIsNone(result.filter)
        self.assertEqual(result.format_stack(), ["x"])


if __name__ == '__main__':
    unittest.main()
