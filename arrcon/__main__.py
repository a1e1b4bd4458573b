# -*- coding: utf-8 -*-

from arrcon.cli import main


if __name__ == "__main__":
    main()
