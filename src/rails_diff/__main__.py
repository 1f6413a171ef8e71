from rails_diff.cli import main

raise SystemExit(main())
