#!/usr/bin/env python3
"""
Persisting sketches with the file backend and the command layer.
"""

import tempfile
from nanohll import FileStorage, HLLService

def main():
    with tempfile.TemporaryDirectory() as data_dir:
        print(f"Using file storage at: {data_dir}")
        service = HLLService(FileStorage(data_dir))

        service.pfadd("daily_visitors", (f"user_{i}" for i in range(1000)))
        print(f"Estimated count: {service.pfcount('daily_visitors')}")
        print(f"Key exists: {service.exists('daily_visitors')}")

        # A fresh service over the same directory sees the stored sketch
        reloaded = HLLService(FileStorage(data_dir))
        print(f"Count after reload: {reloaded.pfcount('daily_visitors')}")
        print(f"All keys in storage: {reloaded.list_keys()}")

        reloaded.delete("daily_visitors")
        print("Cleaned up storage")

if __name__ == "__main__":
    main()
