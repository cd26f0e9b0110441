from time import sleep, perf_counter
from lazy import Lazy
from generators import lazy_range, lazy_repeat, fibonacci, primes

def expensive_transform(x):
    # Simulate a costly step so laziness is visible
    print(f"  computing f({x}) ...")
    sleep(0.2)  # pretend this is expensive
    return x * x

print("\n--- Demo: laziness (no work until iterated) ---")
pipeline = (
    lazy_range(1)                  # infinite source
    .map(expensive_transform)      # expensive; watch when it runs
    .filter(lambda v: v % 2 == 0)
    .skip(3)
    .take(5)
)

print("Constructed pipeline. No output yet (nothing computed).")
print("\nIterating (should compute only what's needed for 5 items):")
t0 = perf_counter()
out = pipeline.to_list()
t1 = perf_counter()
print(f"Result: {out}")
print(f"Time: {t1 - t0:.2f}s\n")

print("--- Demo: classic infinite sequences ---")
print("First ten Fibonacci numbers:", fibonacci().take(10).to_list())
print("First ten primes:", primes().take(10).to_list())
print("Evens of 1..20:", lazy_range(0).take(20).map(lambda x: x + 1).filter(lambda x: x % 2 == 0).to_list())
print()

print("--- Demo: flat_map and zip ---")
print("Each value twice:", lazy_range(0).take(3).flat_map(lambda x: lazy_repeat(x, 2)).to_list())
print("Zipped:", lazy_range(0).take(3).zip(lazy_repeat("a")).to_list())
print()

print("--- Demo: chunked data flattened back out ---")
large_data = list(range(1_000_000))
chunks = Lazy(lambda: (large_data[i:i + 1000] for i in range(0, len(large_data), 1000)))
total = chunks.flat_map(Lazy.from_iterable).reduce(lambda acc, x: acc + x, 0)
print(f"Sum of {len(large_data)} elements: {total}\n")

print("--- Demo: memoized indexing (first lookup computes; second reuses) ---")
squares = lazy_range(1).map(expensive_transform)

print("First lookup of index 3 (computes 4 items):")
t0 = perf_counter()
print("  value:", squares.at(3))
t1 = perf_counter()
print(f"First lookup time: {t1 - t0:.2f}s\n")

print("Second lookup of index 2 (should be instant; no recomputation):")
t0 = perf_counter()
print("  value:", squares.at(2))
t1 = perf_counter()
print(f"Second lookup time: {t1 - t0:.4f}s")
