"""
Main entrypoint for the community map geocoder.

Usage:
    python main.py [--input users_with_fields.json] [--cache geocode_cache.json] [--output geocoded_results.json]

Reads the exported member list, resolves every member's location through the
cache, Nominatim and the OpenAI fallback, and writes the dataset served by
`community_map.api.app`. OPENAI_KEY must be set in the environment or in a .env file.
"""
import argparse
import logging

from dotenv import load_dotenv
from openai import OpenAI

from community_map.config import load_settings
from community_map.errors import ConfigurationError
from community_map.geocoding.ai_fallback import AIGeocoder
from community_map.geocoding.cache import CacheStore
from community_map.geocoding.nominatim import NominatimGeocoder
from community_map.logging_config import setup_logging
from community_map.pipeline.batch_geocoder import BatchGeocoder, load_users
from community_map.pipeline.report import print_summary, summarize

logger = logging.getLogger(__name__)


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Geocode member locations for the community map")
    parser.add_argument("--input", help="JSON array of users to geocode")
    parser.add_argument("--cache", help="Geocode cache file")
    parser.add_argument("--output", help="Where to write the geocoded users")
    return parser


def main(argv=None):
    """
    Main function to run the geocoder.
    """
    load_dotenv()
    setup_logging()
    args = build_arg_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    input_file = args.input or settings.input_file
    cache_file = args.cache or settings.cache_file
    output_file = args.output or settings.output_file

    try:
        users = load_users(input_file)

        geocoder = BatchGeocoder(
            primary=NominatimGeocoder(
                base_url=settings.nominatim_url,
                user_agent=settings.user_agent,
                delay=settings.nominatim_delay,
                denylist=settings.denylist,
            ),
            fallback=AIGeocoder(OpenAI(api_key=settings.openai_api_key), model=settings.openai_model),
            cache_store=CacheStore(cache_file),
            output_path=output_file,
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay,
        )
        ctx = geocoder.run(users)

        print_summary(summarize(ctx.results), output_file)
        return 0
    except Exception as e:
        logger.error(f"An error occurred in the main function: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    exit_code = main()
    print(f"Exiting with code {exit_code}")
    raise SystemExit(exit_code)
