"""Lexical overlap between two short answers."""

from typing import List


class SimilarityScorer:
    """Word-overlap similarity in [0, 1].

    This is deliberately cheap: answers phrased with different words score low
    even when they mean the same thing.
    """

    @staticmethod
    def tokenize(text: str) -> List[str]:
        return (text or "").split()

    def score(self, text1: str, text2: str) -> float:
        """
        Fraction of shared tokens relative to the longer token list.

        Args:
            text1: First string
            text2: Second string

        Returns:
            Similarity in [0, 1]; 0 when both strings are empty
        """
        words1 = self.tokenize(text1)
        words2 = self.tokenize(text2)

        total_words = max(len(words1), len(words2))
        if total_words == 0:
            return 0.0

        vocab1 = set(words1)
        vocab2 = set(words2)
        # take the smaller directional count so that sim(a, b) == sim(b, a)
        common_words = min(
            sum(1 for word in words1 if word in vocab2),
            sum(1 for word in words2 if word in vocab1),
        )
        return common_words / total_words
