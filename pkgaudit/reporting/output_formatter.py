"""
@file output_formatter.py
@brief Terminal output formatting and color management module

Provides colored, formatted output for the package audit tool with:
- ANSI color codes for terminal output
- Section and header formatting
- Status indicator functions (success, error, warning)
- Advisory display with clickable URLs
- Quiet mode and summary lines

@details
Uses ANSI escape sequences for styling:
- Foreground colors for text
- Bold formatting for emphasis
- OSC 8 hyperlink protocol for clickable URLs in modern terminals

Colors are dropped when stdout is not a terminal or NO_COLOR is set, so the
advisory block stays plain text when piped:
@code
openssl-1.0.1g is vulnerable:
OpenSSL -- Heartbleed
WWW: https://vuxml.freebsd.org/freebsd/5631ae98-be9e-11e3-b5e3-c80aa9043978.html

@endcode
"""

import os
import sys


class Colors:
    """
    @class Colors
    @brief ANSI color code constants for terminal styling
    """
    RESET = "\033[0m"
    BOLD = "\033[1m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def use_color():
    """True when stdout is an interactive terminal and NO_COLOR is unset."""
    return sys.stdout.isatty() and "NO_COLOR" not in os.environ


def _paint(text, *codes):
    if not use_color():
        return text
    return f"{''.join(codes)}{text}{Colors.RESET}"


def _link(url):
    if not use_color():
        return url
    return f"\033]8;;{url}\033\\{url}\033]8;;\033\\"


def print_section(title):
    """
    Print a major section header with visual separators.

    @param title str Section title to display
    """
    print(_paint("=" * 60, Colors.BOLD, Colors.CYAN))
    print(_paint(title.center(60), Colors.BOLD, Colors.CYAN))
    print(_paint("=" * 60, Colors.BOLD, Colors.CYAN))


def print_success(message):
    """Print success message in green with checkmark symbol."""
    print(_paint(f"✓ {message}", Colors.GREEN))


def print_warning(message):
    """Print warning message in yellow."""
    print(_paint(f"⚠ {message}", Colors.YELLOW))


def print_error(message):
    """
    Print error message in red with X symbol, on stderr.

    @param message str Message to display
    """
    text = f"✗ {message}"
    if sys.stderr.isatty() and "NO_COLOR" not in os.environ:
        text = f"{Colors.RED}{text}{Colors.RESET}"
    print(text, file=sys.stderr)


def print_vulnerability(match):
    """
    Print one advisory affecting a package.

    @param match AdvisoryMatch Package and advisory to display

    @details
    Format:
    @code
    <name>-<version> is vulnerable:
    <description>
    WWW: <url>
    @endcode
    followed by an empty line.
    """
    print(f"{_paint(match.package, Colors.BOLD, Colors.RED)} is vulnerable:")
    print(match.description)
    print(f"WWW: {_link(match.url)}")
    print()


def print_package_matches(name, version, matches, quiet=False):
    """
    Print every advisory for one vulnerable package.

    @param name str Package name
    @param version str Package version
    @param matches list AdvisoryMatch for this package
    @param quiet bool Only print ``name-version`` once
    """
    if quiet:
        print(f"{name}-{version}")
        return
    for match in matches:
        print_vulnerability(match)


def print_summary(vulnerable_count):
    """Print the closing line of an audit: ``N problem(s) in your installed packages found.``"""
    print(f"{vulnerable_count} problem(s) in your installed packages found.")


def print_stats(total_targets, targets_processed, total_vulnerable):
    """
    Print final processing statistics when several machines were audited.

    @param total_targets int Machines in the inventory selection
    @param targets_processed int Machines successfully audited
    @param total_vulnerable int Vulnerable packages across all machines
    """
    print(_paint("=" * 60, Colors.BOLD, Colors.CYAN))
    print(_paint("Processing Summary:", Colors.BOLD))
    print(f"  • Total machines: {_paint(str(total_targets), Colors.BLUE)}")
    print(f"  • Machines processed: {_paint(str(targets_processed), Colors.GREEN)}")
    print(f"  • Vulnerable packages found: {_paint(str(total_vulnerable), Colors.RED)}")
    print(_paint("=" * 60, Colors.BOLD, Colors.CYAN))
