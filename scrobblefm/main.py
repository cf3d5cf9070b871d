import argparse
import sys

from scrobblefm.fetch.errors import ScrobbleError
from scrobblefm.sync import run_fetch, run_stats
from scrobblefm.utils.env_loader import load_config


def build_parser():
    ap = argparse.ArgumentParser(
        prog="scrobblefm",
        description="Download your Last.fm listening history and keep it in a local file.",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="fetch new scrobbles and merge them into the saved file")
    fetch.add_argument("-u", "--username", help="Last.fm username (defaults to LASTFM_USER)")
    fetch.add_argument("-p", "--page", type=int, help="first page to fetch (default 1)")
    fetch.add_argument("-l", "--limit", type=int, help="tracks per page (default and maximum 1000)")
    fetch.add_argument("-f", "--from", dest="from_ts", type=int, help="only scrobbles after this unix timestamp")
    fetch.add_argument("-t", "--to", dest="to_ts", type=int, help="only scrobbles before this unix timestamp")
    fetch.add_argument("-n", "--new-file", action="store_true", help="start a new file instead of appending")
    fetch.add_argument("--current-day", action="store_true", help="fetch everything since local midnight")
    fetch.add_argument("--no-progress", action="store_true", help="hide the page progress bar")

    stats = sub.add_parser("stats", help="compute stats from the saved file")
    stats.add_argument("-u", "--username", help="Last.fm username (defaults to LASTFM_USER)")
    return ap


def print_fetch_result(result):
    if result.fetched == 0:
        return
    if result.drift:
        print(f"⚠️ {result.total:,} scrobbles were saved to the file, when {result.expected:,} scrobbles were expected.")
        print("Please consider creating a new file with the new file flag. `-n`")
    elif result.total == 1:
        print("✅ One scrobble saved")
    else:
        print(f"✅ {result.total:,} scrobbles saved.")


def print_stats(stats):
    print("STATS:\n")
    print(f"Average Tracks Per Day:   {stats.average_per_day:.2f}")
    print(f"Average Tracks Per Week:  {stats.average_per_week:.2f}")
    print(f"Average Tracks Per Month: {stats.average_per_month:.2f}")
    print(f"Average Tracks Per Year:  {stats.average_per_year:.2f}")
    if stats.best_month:
        label, plays = stats.best_month
        print(f"Best Month: {label} ({plays:,} scrobbles)")


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        if args.command == "fetch":
            config = load_config(require_username=not args.username)
            result = run_fetch(
                config,
                username=args.username,
                page=args.page,
                limit=args.limit,
                from_ts=args.from_ts,
                to_ts=args.to_ts,
                new_file=args.new_file,
                current_day=args.current_day,
                show_progress=not args.no_progress,
            )
            print_fetch_result(result)
        else:
            config = load_config(require_username=not args.username, require_api_key=False)
            stats = run_stats(config, username=args.username)
            if stats is None:
                print(f"❌ No file for `{args.username or config.username}` exists. Stats cannot be calculated.")
                return 1
            print_stats(stats)
    except ScrobbleError as e:
        print(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
