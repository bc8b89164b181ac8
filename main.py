#!/usr/bin/env python3
"""
Fapiao Line-Item Extraction System - Main Entry Point.

This is the main entry point for the fapiao extraction system.
It provides both a command-line interface and programmatic access
to the extraction pipeline.

Usage:
    Command Line:
        python main.py --input invoice.pdf --output results.xlsx
        python main.py --input ./invoices/ --output ./results/ --json

    Python:
        from main import run_extraction
        results = run_extraction("invoices/")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager, load_settings
from fapiao_extraction.input_handler import InputHandler
from fapiao_extraction.output_handler import OutputHandler
from fapiao_extraction.pipeline import BatchProcessor, InvoiceExtractor
from fapiao_extraction.records import DocumentResult
from fapiao_extraction.utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logger_from_config
from fapiao_extraction.utils.exceptions import InvoiceExtractionError


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Fapiao Line-Item Extraction System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Process single invoice:
        python main.py --input invoice.pdf --output results.xlsx

    Process directory, also writing JSON:
        python main.py --input ./invoices/ --output ./results/ --json
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input PDF file or directory containing invoices"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output .xlsx file or directory (default: paths.output_dir)"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Also write the full results as JSON"
    )

    parser.add_argument(
        "--no-excel",
        action="store_true",
        help="Disable Excel output"
    )

    # Processing options
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--batch-size", "-b",
        type=int,
        default=None,
        help="Documents processed concurrently (default: parser.batch_size)"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize the extraction system with configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config(config)

    if args.debug:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG)
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)

    logger.info("=" * 60)
    logger.info("FAPIAO LINE-ITEM EXTRACTION SYSTEM")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output or config.get('paths.output_dir', 'outputs')}")

    return config


def log_progress(percent: float, file_name: str) -> None:
    """Progress callback for the batch processor."""
    get_logger(__name__).info(f"[{percent:5.1f}%] {file_name}")


def run_extraction(
    input_path: str,
    output_path: Optional[str] = None,
    config_path: Optional[str] = None,
    enable_excel: bool = True,
    enable_json: Optional[bool] = None,
    batch_size: Optional[int] = None
) -> List[DocumentResult]:
    """
    Run the fapiao extraction pipeline.

    This is the main programmatic entry point for the extraction system.
    It collects the input documents, processes them in concurrent
    batches and writes the enabled outputs.

    Args:
        input_path: Path to input file or directory.
        output_path: Output .xlsx file or output directory.
        config_path: Optional custom configuration file path.
        enable_excel: Whether to generate Excel output.
        enable_json: Whether to generate JSON output (config when None).
        batch_size: Concurrency width (config when None).

    Returns:
        One DocumentResult per input document.

    Example:
        >>> results = run_extraction("invoices/", "outputs/")
        >>> for r in results:
        ...     print(r.invoice_number, len(r.items))
    """
    logger = get_logger(__name__)

    config, settings = load_settings(config_path)

    input_handler = InputHandler(
        backend=settings.coordinate_backend,
        supported_extensions=config.get("input.supported_extensions")
    )
    files = input_handler.collect(input_path)
    if not files:
        return []

    processor = BatchProcessor(
        InvoiceExtractor(settings),
        batch_size=batch_size,
        input_handler=input_handler
    )

    logger.info(f"Processing {len(files)} files...")
    results = processor.run(files, progress=log_progress)

    # Determine output location
    output_dir = None
    excel_filename = None
    if output_path:
        output_p = Path(output_path)
        if output_p.suffix == '.xlsx':
            output_dir = output_p.parent
            excel_filename = output_p.name
        else:
            output_dir = output_p

    output_handler = OutputHandler(
        config,
        output_dir=output_dir,
        excel_enabled=enable_excel,
        json_enabled=enable_json
    )
    output_info = output_handler.save(results, excel_filename=excel_filename)

    if output_info.get('excel_path'):
        logger.info(f"Excel output: {output_info['excel_path']}")
    if output_info.get('json_path'):
        logger.info(f"JSON output: {output_info['json_path']}")

    return results


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 when every document succeeded, 1 otherwise).
    """
    try:
        args = parse_arguments(argv)

        initialize_system(args)
        logger = get_logger(__name__)

        results = run_extraction(
            input_path=args.input,
            output_path=args.output,
            config_path=args.config,
            enable_excel=not args.no_excel,
            enable_json=True if args.json else None,
            batch_size=args.batch_size
        )

        if not results:
            logger.error("No files to process")
            return 1

        failed = [r for r in results if not r.success]
        item_count = sum(len(r.items) for r in results)

        logger.info("=" * 60)
        logger.info(
            f"Extraction complete. Processed {len(results)} files, "
            f"{item_count} line items, {len(failed)} failed."
        )
        logger.info("=" * 60)

        for result in failed:
            logger.warning(f"  {result.file_name}: {result.error_message}")

        return 1 if failed else 0

    except InvoiceExtractionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
