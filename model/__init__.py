def load_all_models():
    import model.user                                    # noqa: F401
    import model.profiles.buyer                          # noqa: F401
    import model.profiles.developer                      # noqa: F401
    import model.property.property                       # noqa: F401
    import model.purchase                                # noqa: F401
