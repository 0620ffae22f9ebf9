#
# Copyright 2024 xcfbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

import subprocess
import time
from threading import Timer

# native builds of the larger frameworks take a long time
DEFAULT_TIMEOUT_SECOND = 3 * 3600

# same convention as a shell for "command not found"
COMMAND_NOT_FOUND = 127

# found but could not be started, e.g. missing execute permission
COMMAND_NOT_EXECUTABLE = 126


def decode_bytes(data: bytes) -> str:
    if not data:
        return ""
    try:
        return bytes.decode(data, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(data, "latin-1")


def exec_command(command, cwd=None, timeout_second=DEFAULT_TIMEOUT_SECOND):
    """
    Run an external tool and capture its combined output.

    Args:
        command: Argument list, e.g. ["xcodebuild", "-version"]
        cwd: Working directory for the tool
        timeout_second: The process is killed when it runs longer than this

    Returns:
        tuple: (exit_code, output)
    """
    start_mills = int(time.time() * 1000)
    try:
        popen = subprocess.Popen(
            command,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        return COMMAND_NOT_FOUND, f"{command[0]}: command not found ({e})"
    except OSError as e:
        return COMMAND_NOT_EXECUTABLE, f"{command[0]}: cannot execute ({e})"
    timer = Timer(timeout_second, lambda process: process.kill(), [popen])
    try:
        timer.start()
        stdout, _ = popen.communicate()
    finally:
        timer.cancel()
    err_code = popen.returncode
    err_msg = decode_bytes(stdout)
    if err_code == -9 and not err_msg:
        use_time = int(time.time() * 1000) - start_mills
        err_msg = f"Failed for timeout({err_code}), use_time: {use_time}ms"
    return err_code, err_msg


def format_command(command) -> str:
    return " ".join(f'"{x}"' if (" " in x or not x) else x for x in command)
