"""
Mealwise - Recipe Engine Core.

Pure ranking logic over library recipes:
- normalize: ingredient name canonicalization and Jaccard similarity
- scoring: five-factor composite score and the reuse gate
- taste: 26-axis taste embeddings and novelty
- weekly: variety and effort balancing across a week of slots
"""
