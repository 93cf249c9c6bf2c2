from __future__ import annotations

from kinesis_batch_publisher.app import main

if __name__ == "__main__":
    raise SystemExit(main())
