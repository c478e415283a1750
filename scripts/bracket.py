#!/usr/bin/env python3
"""
Set up tournaments and pair round one from the command line.

Usage:
    python scripts/bracket.py create --owner OWNER --participants A B C ...
    python scripts/bracket.py pair TOURNAMENT_ID --owner OWNER
    python scripts/bracket.py show TOURNAMENT_ID --user USER

Examples:
    # Seed a chess tournament with five active participants
    python scripts/bracket.py create --owner alice --participants bob carol dave erin frank

    # Generate the first round as the owner
    python scripts/bracket.py pair 3f1c... --owner alice

    # Print bracket and standings
    python scripts/bracket.py show 3f1c... --user alice
"""

import argparse
import logging
import sys
import uuid
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tourney.config import Settings
from tourney.errors import TourneyError
from tourney.game.clock import now_ms
from tourney.tournament import (
    BracketGenerator, MatchLifecycle, Participant, ParticipantStatus,
    Tournament, TournamentStorage, compute_standings, format_bracket, format_standings
)
from tourney.utils.constants import CHESS


def parse_args():
    """Parse command line arguments."""
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description='Manage tournament brackets.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '--data-dir',
        type=str, default=settings.data_dir,
        help=f'Directory for the match database (default: {settings.data_dir})'
    )
    parser.add_argument(
        '--log-level',
        type=str, default=settings.log_level,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help=f'Logging level (default: {settings.log_level})'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    create = subparsers.add_parser('create', help='Create a tournament with active participants')
    create.add_argument('--owner', type=str, required=True, help='Owner user id')
    create.add_argument(
        '--participants', '-p',
        type=str, nargs='+', required=True,
        help='Participant user ids, in registration order'
    )
    create.add_argument('--name', type=str, default='', help='Tournament name')
    create.add_argument(
        '--game-type',
        type=str, default=CHESS,
        help=f'Game type (default: {CHESS})'
    )
    create.add_argument(
        '--max-participants',
        type=int, default=None,
        help='Participant cap (default: number of participants)'
    )

    pair = subparsers.add_parser('pair', help='Generate round-one matches')
    pair.add_argument('tournament_id', type=str)
    pair.add_argument('--owner', type=str, required=True, help='Owner user id')

    show = subparsers.add_parser('show', help='Print bracket and standings')
    show.add_argument('tournament_id', type=str)
    show.add_argument('--user', type=str, required=True, help='Viewing user id')

    return parser.parse_args()


def create_tournament(storage: TournamentStorage, args) -> str:
    """Insert a tournament and register its participants as active."""
    participants = list(dict.fromkeys(args.participants))
    tournament = Tournament(
        id=str(uuid.uuid4()),
        owner_id=args.owner,
        game_type=args.game_type,
        max_participants=args.max_participants or len(participants),
        name=args.name
    )
    storage.add_tournament(tournament)

    registered_at = now_ms()
    for user_id in participants:
        storage.add_participant(Participant(
            tournament_id=tournament.id,
            user_id=user_id,
            status=ParticipantStatus.ACTIVE,
            registered_at=registered_at
        ))

    print(f"Created tournament {tournament.id} with {len(participants)} participants")
    return tournament.id


def main():
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=args.log_level, format='%(levelname)s %(name)s: %(message)s')

    storage = TournamentStorage(data_dir=args.data_dir)
    lifecycle = MatchLifecycle(storage)
    generator = BracketGenerator(storage, lifecycle)

    try:
        if args.command == 'create':
            create_tournament(storage, args)

        elif args.command == 'pair':
            first_round = generator.generate_first_round(args.owner, args.tournament_id)
            print(format_bracket(first_round.matches, first_round.unpaired))

        elif args.command == 'show':
            matches = lifecycle.list_matches(args.user, args.tournament_id)
            print(format_bracket(matches))
            print()
            standings = compute_standings(generator.active_participants(args.tournament_id), matches)
            print(format_standings(standings))

    except (TourneyError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
