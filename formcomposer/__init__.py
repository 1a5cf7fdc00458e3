"""Form Composer: browser automation for rehearsing form-filling flows."""
