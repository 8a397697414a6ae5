#!/usr/bin/env python3
"""
pager.py - Candidate paging (候補のページ送り)

The first `threshold` candidates are shown one at a time in the buffer
(inline). After that the candidates are shown in pages of PAGE_SIZE and the
selection index moves a whole page at a time.

With threshold=4 and 20 candidates, advancing from nothing visits:

    -1 → 0 → 1 → 2 → 3 → 10 → 17 → 24 → (31: exhausted)
         └── inline ──┘   └──── pages ────┘

The index of a page is its last candidate, so page 10 shows candidates
4..10 and page 17 shows 11..17. The last page may be short: page 24 shows
only 18..19, and its last real candidate stands in for the page index.
Retreating from a page goes back one page and never further than the last
inline candidate (threshold - 1).
"""

import logging

logger = logging.getLogger(__name__)

INTERRUPT_CANCEL = 'cancel'
INTERRUPT_CLOSE = 'close'


class CandidatePager:
    PAGE_SIZE = 7

    def __init__(self, threshold=4, select_keys='asdfjkl', immediately_cancel=True):
        self.threshold = threshold
        self.select_keys = select_keys
        self.immediately_cancel = immediately_cancel

    def is_paging(self, index):
        """True when `index` points at a page rather than an inline candidate."""
        return index >= self.threshold

    def forward(self, index):
        if index >= self.threshold - 1:
            return index + self.PAGE_SIZE
        return index + 1

    def backward(self, index):
        if index >= self.threshold:
            return max(index - self.PAGE_SIZE, self.threshold - 1)
        return index - 1

    def page_start(self, index):
        return max(index - self.PAGE_SIZE + 1, 0)

    def is_exhausted(self, candidates, index):
        """
        True when `index` has nothing left to show: past the last candidate
        inline, or a page that would start after the last candidate. The
        last page may be short.
        """
        if self.is_paging(index):
            return self.page_start(index) >= len(candidates)
        return index >= len(candidates)

    def page(self, candidates, index):
        """
        Candidates shown on the page ending at `index`.

        Returns:
            list: (select_key, candidate) tuples, at most PAGE_SIZE long
        """
        start = self.page_start(index)
        shown = candidates[start:index + 1]
        return list(zip(self.select_keys, shown))

    def labels(self, candidates, index, strip=None):
        """Page entries rendered as "a: 候補" strings for a popup."""
        strip = strip or (lambda c: c)
        return [f'{key}: {strip(candidate)}' for key, candidate in self.page(candidates, index)]

    def select(self, candidates, index, key):
        """
        Map a select key to an absolute candidate index on the current page.

        Returns:
            int or None: the selected index, or None for keys that are not
                         select keys or point past the end of the page
        """
        if not self.is_paging(index):
            return None
        position = self.select_keys.find(key)
        if position == -1:
            return None
        selected = self.page_start(index) + position
        if selected > index or selected >= len(candidates):
            return None
        return selected

    def block(self, candidates, block_number):
        """
        A page of the interactive selection loop, which pages by the number
        of select keys starting right after the inline candidates.

        Returns:
            tuple: (start_index, list of (select_key, candidate))
        """
        start = self.threshold + block_number * len(self.select_keys)
        shown = candidates[start:start + len(self.select_keys)]
        return start, list(zip(self.select_keys, shown))

    def on_interrupt(self):
        """
        What an interrupt during interactive key reading should do: discard
        the conversion, or only close the page and keep the state.
        """
        return INTERRUPT_CANCEL if self.immediately_cancel else INTERRUPT_CLOSE
