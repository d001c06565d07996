#!/usr/bin/env python3
"""
Merging HyperLogLog sketches kept by separate servers.

Three servers count overlapping ranges of visitors; merging their sketches
estimates the number of distinct visitors across all of them.
"""

from nanohll import HyperLogLog

def server_sketch(start, stop, precision=14):
    sketch = HyperLogLog(precision)
    for i in range(start, stop):
        sketch.add_str(f"user_{i}")
    return sketch

def main():
    servers = [server_sketch(0, 5000), server_sketch(2500, 7500), server_sketch(5000, 10000)]
    for i, sketch in enumerate(servers, 1):
        print(f"Server {i} unique visitors: {sketch.count()}")

    total = servers[0].copy()
    for sketch in servers[1:]:
        total.merge(sketch)

    actual = 10000
    estimate = total.count()
    print("\n--- Merged Results ---")
    print(f"Actual total unique visitors: {actual}")
    print(f"Estimated total: {estimate}")
    print(f"Error: {abs(estimate - actual) / actual:.2%}")

if __name__ == "__main__":
    main()
