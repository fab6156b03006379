"""
Командная строка для компрессора Хаффмана.
"""

import argparse
import sys
from compressor import FileCompressor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Huffman file compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  huffpress compress file.txt
  huffpress compress file.txt -o packed.hf
  huffpress decompress file.txt.hf -o restored.txt
  huffpress codes file.txt
        """
    )
    parser.add_argument('-d', '--debug', type=int, default=0,
                        help='Debug level (1 = summary, 4 = code tables)')
    parser.add_argument('-f', '--force', action='store_true',
                        help='Overwrite existing output files')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress a file')
    compress_parser.add_argument('file', help='File to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (default: FILE.hf)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress a file')
    decompress_parser.add_argument('file', help='Compressed file')
    decompress_parser.add_argument('-o', '--output',
                                   help='Output path (default: FILE without .hf)')

    codes_parser = subparsers.add_parser('codes', help='Show the code table for a file')
    codes_parser.add_argument('file', help='File to analyse')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    compressor = FileCompressor(debug=args.debug, force=args.force)

    try:
        if args.command == 'compress':
            compressor.compress_file(args.file, args.output)

        elif args.command == 'decompress':
            compressor.decompress_file(args.file, args.output)

        elif args.command == 'codes':
            compressor.show_codes(args.file)

    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
