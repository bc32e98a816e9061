import sys

from display_sync.cli import receiver_main, sender_main

USAGE = "usage: python -m display_sync {sender,receiver} [options]"


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in ("sender", "receiver"):
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    if argv[0] == "sender":
        sender_main(argv[1:])
    else:
        receiver_main(argv[1:])


if __name__ == "__main__":
    main()
