#!/usr/bin/env python3
"""Destroy a container and rebuild it with the same configuration."""

import argparse
import sys
from typing import List, Optional

from dockwatch import DOCKER_SOCKET_PATH, DockerClient, UpdateError, rebuild_container


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='rebuild-container',
        description='Destroys and rebuilds a container with the same configuration.'
    )
    parser.add_argument('container_id', help='ID or name of the container to rebuild')
    parser.add_argument(
        '--socket',
        default=DOCKER_SOCKET_PATH,
        help='Docker Engine socket (env: DOCKER_SOCKET, default: /var/run/docker.sock)'
    )
    args = parser.parse_args(argv)

    try:
        new_id = rebuild_container(DockerClient(args.socket), args.container_id)
    except UpdateError as e:
        sys.stderr.write(f"{e}\n")
        return 1

    # Echo the new ID at the length the caller used for the old one
    sys.stdout.write(new_id[:len(args.container_id)])
    return 0


if __name__ == '__main__':
    sys.exit(main())
