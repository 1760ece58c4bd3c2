import logging
import os
from datetime import datetime


def setup_logging(logs_dir=None, level=logging.INFO):
    """
    Configure root logging to write to both a dated log file and the console.

    Returns the path of the log file.
    """
    # Create logs directory
    logs_dir = logs_dir or os.path.join(os.getcwd(), 'logs')
    os.makedirs(logs_dir, exist_ok=True)

    # Create log file with today's date
    log_filename = os.path.join(logs_dir, f'geocoder_{datetime.now().strftime("%Y%m%d")}.log')

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename),
            logging.StreamHandler()
        ]
    )
    return log_filename
