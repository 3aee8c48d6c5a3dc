"""
Benchmark lshsearch against brute-force search

This script builds a random corpus, times exact search against LSH index
construction and querying, and reports the recall of LSH on the same queries.
"""

import logging
import time

import numpy as np

from lshsearch import LSHIndex, brute_force_neighbors, nearest_neighbors


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    rng = np.random.default_rng(0)
    corpus = rng.random((10000, 30), dtype=np.float32)
    query_ids = rng.choice(len(corpus), size=100, replace=False)
    max_distance = 1.0

    print(f"Corpus: {corpus.shape[0]} points of dimension {corpus.shape[1]}")

    start = time.perf_counter()
    exact = {
        int(q): set(brute_force_neighbors(corpus, "euclidean", int(q), max_distance=max_distance))
        for q in query_ids
    }
    brute_elapsed = time.perf_counter() - start
    print(f"\nBrute force: {brute_elapsed:.2f}s for {len(query_ids)} queries")

    start = time.perf_counter()
    index = LSHIndex.build(corpus, n_tables=50, bandwidth=4.0, hash_size=13, seed=0)
    build_elapsed = time.perf_counter() - start
    print(f"LSH build: {build_elapsed:.2f}s ({index.n_tables} tables)")

    start = time.perf_counter()
    approximate = {
        int(q): nearest_neighbors(corpus, index, "euclidean", int(q), max_distance=max_distance)
        for q in query_ids
    }
    query_elapsed = time.perf_counter() - start
    print(f"LSH queries: {query_elapsed:.2f}s for {len(query_ids)} queries")

    found = sum(len(approximate[q] & exact[q]) for q in exact)
    total = sum(len(exact[q]) for q in exact)
    recall = found / total if total else 1.0
    print(f"\nRecall within distance {max_distance}: {recall:.3f} ({found}/{total})")


if __name__ == "__main__":
    main()
